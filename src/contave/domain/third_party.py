"""Third party domain service."""

from typing import Optional

from contave.database.base import Database
from contave.domain.entities import (
    ThirdParty as ThirdPartyEntity,
    ThirdPartyDraft,
    ThirdPartyPatch,
    ThirdPartyType,
)
from contave.domain.errors import (
    ConflictError,
    IncompleteDataError,
    NotFoundError,
    ValidationError,
    company_not_found,
    duplicate_rif,
    missing_fields,
    third_party_not_found,
)
from contave.domain.permissions import Caller, require
from contave.logging_config import get_logger

logger = get_logger(__name__)


def normalize_rif(rif: str) -> str:
    """Uppercase a RIF and drop surrounding whitespace (``j-12345678-9`` -> ``J-12345678-9``)."""
    return rif.strip().upper()


class ThirdPartyService:
    """Service for managing customers, suppliers and other counterparts."""

    def __init__(self, db: Database):
        """Initialize third party service.

        Args:
            db: Database instance
        """
        self.db = db

    def get_third_party(self, third_party_id: int) -> ThirdPartyEntity:
        """Get third party by ID.

        Raises:
            NotFoundError: If the third party does not exist
        """
        third_party = self.db.get_third_party(third_party_id)
        if third_party is None:
            raise NotFoundError(third_party_not_found(third_party_id))
        return third_party

    def list_third_parties(
        self,
        company_id: int,
        third_party_type: Optional[ThirdPartyType] = None,
        active_only: bool = True,
        search: Optional[str] = None,
    ) -> list[ThirdPartyEntity]:
        """List a company's third parties ordered by legal name.

        Args:
            company_id: Company ID
            third_party_type: Optional type filter
            active_only: If True, deactivated third parties are skipped
            search: Optional text matched against legal name, RIF and commercial name

        Returns:
            List of third party entities
        """
        return self.db.list_third_parties(
            company_id, third_party_type=third_party_type, active_only=active_only, search=search
        )

    def create_third_party(self, caller: Optional[Caller], draft: ThirdPartyDraft) -> int:
        """Create a third party.

        Raises:
            IncompleteDataError: If type, RIF or legal name is missing
            NotFoundError: If the company does not exist
            ConflictError: If the RIF is already registered in the company
        """
        caller = require(caller, "thirdparties", "create")

        missing = [
            name
            for name, value in (
                ("company", draft.company_id),
                ("type", draft.third_party_type),
                ("RIF", draft.rif),
                ("legal name", draft.legal_name),
            )
            if value is None or value == ""
        ]
        if missing:
            raise IncompleteDataError(missing_fields(missing))

        if self.db.get_company(draft.company_id) is None:
            raise NotFoundError(company_not_found(draft.company_id))

        rif = normalize_rif(draft.rif)
        if self.db.get_third_party_by_rif(draft.company_id, rif) is not None:
            raise ConflictError(duplicate_rif(rif, draft.company_id))

        if rif != draft.rif:
            draft = ThirdPartyDraft(**{**vars(draft), "rif": rif})

        third_party_id = self.db.create_third_party(draft, created_by=caller.user_id)
        logger.info(
            "third party created",
            extra={"third_party_id": third_party_id, "rif": rif, "company_id": draft.company_id},
        )
        return third_party_id

    def update_third_party(
        self, caller: Optional[Caller], third_party_id: int, patch: ThirdPartyPatch
    ) -> None:
        """Apply a third party patch.

        Raises:
            NotFoundError: If the third party does not exist
            ValidationError: If the new legal name is empty
        """
        caller = require(caller, "thirdparties", "edit")
        self.get_third_party(third_party_id)

        changes = patch.changes()
        if "legal_name" in changes and not str(changes["legal_name"]).strip():
            raise ValidationError("Legal name cannot be empty")
        if not changes:
            return

        self.db.update_third_party(third_party_id, changes, updated_by=caller.user_id)
        logger.info(
            "third party updated", extra={"third_party_id": third_party_id, "fields": sorted(changes)}
        )

    def deactivate_third_party(self, caller: Optional[Caller], third_party_id: int) -> None:
        """Soft-delete a third party."""
        caller = require(caller, "thirdparties", "delete")
        self.get_third_party(third_party_id)

        self.db.set_third_party_active(third_party_id, False, updated_by=caller.user_id)
        logger.info("third party deactivated", extra={"third_party_id": third_party_id})
