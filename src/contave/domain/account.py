"""Chart of accounts domain service."""

from typing import Optional

from contave.database.base import Database
from contave.domain.entities import Account as AccountEntity, AccountDraft, AccountPatch
from contave.domain.errors import (
    ConflictError,
    IncompleteDataError,
    NotFoundError,
    ValidationError,
    account_not_found,
    company_not_found,
    duplicate_account_code,
    missing_fields,
)
from contave.domain.permissions import Caller, require
from contave.logging_config import get_logger

logger = get_logger(__name__)


class AccountService:
    """Service for managing the chart of accounts."""

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def resolve(self, company_id: int, account_id: int) -> AccountEntity:
        """Get an account that belongs to a company.

        Args:
            company_id: Company the account must belong to
            account_id: Account ID

        Returns:
            Account entity

        Raises:
            NotFoundError: If the account does not exist in that company
        """
        account = self.db.get_account(account_id)
        if account is None or account.company_id != company_id:
            raise NotFoundError(account_not_found(account_id))
        return account

    def level_of(self, parent_id: Optional[int]) -> int:
        """Return the level a child of ``parent_id`` gets (1 for a root)."""
        if parent_id is None:
            return 1
        parent = self.db.get_account(parent_id)
        if parent is None:
            raise NotFoundError(account_not_found(parent_id))
        return parent.level + 1

    def get_account(self, account_id: int) -> Optional[AccountEntity]:
        """Get account by ID.

        Args:
            account_id: Account ID

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(account_id)

    def get_account_by_code(self, company_id: int, code: str) -> Optional[AccountEntity]:
        """Get account by its code within a company."""
        return self.db.get_account_by_code(company_id, code)

    def list_accounts(self, company_id: int, active_only: bool = True) -> list[AccountEntity]:
        """List a company's accounts ordered by code.

        Args:
            company_id: Company ID
            active_only: If True, deactivated accounts are skipped

        Returns:
            List of account entities
        """
        return self.db.list_accounts(company_id, active_only=active_only)

    def create_account(self, caller: Optional[Caller], draft: AccountDraft) -> int:
        """Create an account.

        The level is computed here from the parent and never changes again.

        Args:
            caller: Identity performing the operation
            draft: Account data

        Returns:
            Account ID

        Raises:
            IncompleteDataError: If code, name, nature or type is missing
            NotFoundError: If the company or parent does not exist
            ConflictError: If the code is already used in the company
        """
        caller = require(caller, "accounts", "create")

        missing = [
            name
            for name, value in (
                ("company", draft.company_id),
                ("code", draft.code),
                ("name", draft.name),
                ("nature", draft.nature),
                ("type", draft.account_type),
            )
            if value is None or value == ""
        ]
        if missing:
            raise IncompleteDataError(missing_fields(missing))

        if self.db.get_company(draft.company_id) is None:
            raise NotFoundError(company_not_found(draft.company_id))

        if self.db.get_account_by_code(draft.company_id, draft.code) is not None:
            raise ConflictError(duplicate_account_code(draft.code, draft.company_id))

        if draft.parent_id is not None:
            parent = self.resolve(draft.company_id, draft.parent_id)
            level = parent.level + 1
        else:
            level = 1

        account_id = self.db.create_account(draft, level=level, created_by=caller.user_id)
        logger.info(
            "account created",
            extra={"account_id": account_id, "code": draft.code, "company_id": draft.company_id},
        )
        return account_id

    def update_account(self, caller: Optional[Caller], account_id: int, patch: AccountPatch) -> None:
        """Apply an account patch.

        Args:
            caller: Identity performing the operation
            account_id: Account ID
            patch: Fields to change

        Raises:
            NotFoundError: If the account does not exist
            ValidationError: If the new name is empty
        """
        caller = require(caller, "accounts", "edit")

        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))

        changes = patch.changes()
        if "name" in changes and not str(changes["name"]).strip():
            raise ValidationError("Account name cannot be empty")
        if not changes:
            return

        self.db.update_account(account_id, changes, updated_by=caller.user_id)
        logger.info("account updated", extra={"account_id": account_id, "fields": sorted(changes)})

    def deactivate_account(self, caller: Optional[Caller], account_id: int) -> None:
        """Soft-delete an account. Posted lines keep pointing at it."""
        caller = require(caller, "accounts", "delete")

        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))

        self.db.set_account_active(account_id, False, updated_by=caller.user_id)
        logger.info("account deactivated", extra={"account_id": account_id})
