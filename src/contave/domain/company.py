"""Company domain service."""

from datetime import date
from typing import Optional

from contave.database.base import Database
from contave.domain.auth import ensure_admin_role
from contave.domain.entities import Company as CompanyEntity, CompanyDraft
from contave.domain.errors import (
    ConflictError,
    IncompleteDataError,
    NotFoundError,
    company_not_found,
    missing_fields,
)
from contave.domain.period import PeriodService
from contave.domain.permissions import Caller, allowed, require, require_authenticated
from contave.logging_config import get_logger

logger = get_logger(__name__)


class CompanyService:
    """Service for managing companies."""

    def __init__(self, db: Database):
        """Initialize company service.

        Args:
            db: Database instance
        """
        self.db = db
        self.periods = PeriodService(db)

    def create_company(
        self, caller: Optional[Caller], draft: CompanyDraft, today: Optional[date] = None
    ) -> int:
        """Create a company ready for postings.

        The creator becomes its administrator and the twelve months of the
        current year are opened.

        Args:
            caller: Identity performing the operation
            draft: Company data
            today: Reference date for the fiscal year (defaults to today)

        Returns:
            Company ID

        Raises:
            IncompleteDataError: If code, legal name, RIF or address is missing
            ConflictError: If the code is already used
        """
        caller = require(caller, "companies", "create")

        missing = [
            name
            for name, value in (
                ("code", draft.code),
                ("legal name", draft.legal_name),
                ("RIF", draft.rif),
                ("fiscal address", draft.fiscal_address),
            )
            if not value
        ]
        if missing:
            raise IncompleteDataError(missing_fields(missing))

        if self.db.get_company_by_code(draft.code) is not None:
            raise ConflictError(f"Company with code '{draft.code}' already exists")

        year = (today or date.today()).year
        with self.db.transaction():
            company_id = self.db.create_company(draft, created_by=caller.user_id)
            role = ensure_admin_role(self.db)
            first_company = not self.db.list_memberships(caller.user_id)
            self.db.add_membership(caller.user_id, company_id, role.id, is_default=first_company)
            self.periods.seed_year(company_id, year, created_by=caller.user_id)

        logger.info(
            "company created",
            extra={"company_id": company_id, "code": draft.code, "user_id": caller.user_id},
        )
        return company_id

    def get_company(self, company_id: int) -> CompanyEntity:
        """Get company by ID.

        Raises:
            NotFoundError: If the company does not exist
        """
        company = self.db.get_company(company_id)
        if company is None:
            raise NotFoundError(company_not_found(company_id))
        return company

    def list_companies(self, caller: Optional[Caller]) -> list[CompanyEntity]:
        """List the companies a caller can see.

        Callers allowed to create companies see all of them, everybody else
        only the ones they belong to.
        """
        caller = require_authenticated(caller)
        if allowed(caller.permissions, "companies", "create"):
            return self.db.list_companies()
        return self.db.list_companies(user_id=caller.user_id)
