"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date
from decimal import Decimal
from typing import Optional, Any

# Import entities directly to avoid circular import through domain/__init__.py
from contave.domain.entities import (
    Account,
    AccountDraft,
    Company,
    CompanyDraft,
    EntryFilters,
    EntryRecord,
    JournalEntry,
    Membership,
    Period,
    PeriodStatus,
    Role,
    ThirdParty,
    ThirdPartyDraft,
    ThirdPartyType,
    User,
)


class Database(ABC):
    """Abstract database interface for contave.

    Single writes commit on their own. Inside :meth:`transaction` every write
    joins one unit of work that commits when the outermost block exits and
    rolls back if it raises.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def transaction(self) -> AbstractContextManager[Any]:
        """Return a context manager wrapping one atomic unit of work."""
        pass

    # User and role operations
    @abstractmethod
    def create_user(
        self, username: str, email: str, password_hash: str, first_name: str, last_name: str
    ) -> int:
        """Create a user. Returns user ID."""
        pass

    @abstractmethod
    def get_user(self, user_id: int) -> Optional[User]:
        """Get user by ID."""
        pass

    @abstractmethod
    def get_user_by_login(self, login: str) -> Optional[User]:
        """Get user by username or email."""
        pass

    @abstractmethod
    def get_password_hash(self, user_id: int) -> Optional[str]:
        """Get the stored password hash of a user."""
        pass

    @abstractmethod
    def count_users(self) -> int:
        """Count all users."""
        pass

    @abstractmethod
    def list_users(self, active_only: bool = False) -> list[User]:
        """List users ordered by username."""
        pass

    @abstractmethod
    def update_user(self, user_id: int, changes: dict[str, Any]) -> None:
        """Apply changes to a user's patchable columns."""
        pass

    @abstractmethod
    def set_password_hash(self, user_id: int, password_hash: str) -> None:
        """Replace a user's password hash."""
        pass

    @abstractmethod
    def record_failed_login(self, user_id: int) -> None:
        """Increment the failed login counter."""
        pass

    @abstractmethod
    def record_successful_login(self, user_id: int) -> None:
        """Reset the failed login counter and stamp the login time."""
        pass

    @abstractmethod
    def create_role(
        self, name: str, permissions: list[tuple[str, str]], description: Optional[str] = None
    ) -> int:
        """Create a role with ``(module, action)`` grants. Returns role ID."""
        pass

    @abstractmethod
    def get_role(self, role_id: int) -> Optional[Role]:
        """Get role by ID."""
        pass

    @abstractmethod
    def get_role_by_name(self, name: str) -> Optional[Role]:
        """Get role by name."""
        pass

    @abstractmethod
    def list_roles(self) -> list[Role]:
        """List all roles."""
        pass

    @abstractmethod
    def add_membership(self, user_id: int, company_id: int, role_id: int, is_default: bool = False) -> None:
        """Give a user access to a company through a role."""
        pass

    @abstractmethod
    def list_memberships(self, user_id: int, active_only: bool = True) -> list[Membership]:
        """List a user's company memberships."""
        pass

    # Company operations
    @abstractmethod
    def create_company(self, draft: CompanyDraft, created_by: Optional[int] = None) -> int:
        """Create a company. Returns company ID."""
        pass

    @abstractmethod
    def get_company(self, company_id: int) -> Optional[Company]:
        """Get company by ID."""
        pass

    @abstractmethod
    def get_company_by_code(self, code: str) -> Optional[Company]:
        """Get company by code."""
        pass

    @abstractmethod
    def list_companies(self, user_id: Optional[int] = None) -> list[Company]:
        """List active companies, optionally only those a user belongs to."""
        pass

    # Account operations
    @abstractmethod
    def create_account(self, draft: AccountDraft, level: int, created_by: Optional[int] = None) -> int:
        """Create an account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def get_account_by_code(self, company_id: int, code: str) -> Optional[Account]:
        """Get account by company and code."""
        pass

    @abstractmethod
    def list_accounts(self, company_id: int, active_only: bool = True) -> list[Account]:
        """List a company's accounts ordered by code."""
        pass

    @abstractmethod
    def update_account(self, account_id: int, changes: dict[str, Any], updated_by: Optional[int] = None) -> None:
        """Apply patched fields to an account."""
        pass

    @abstractmethod
    def set_account_active(self, account_id: int, is_active: bool, updated_by: Optional[int] = None) -> None:
        """Activate or deactivate an account."""
        pass

    # Third party operations
    @abstractmethod
    def create_third_party(self, draft: ThirdPartyDraft, created_by: Optional[int] = None) -> int:
        """Create a third party. Returns third party ID."""
        pass

    @abstractmethod
    def get_third_party(self, third_party_id: int) -> Optional[ThirdParty]:
        """Get third party by ID."""
        pass

    @abstractmethod
    def get_third_party_by_rif(self, company_id: int, rif: str) -> Optional[ThirdParty]:
        """Get third party by company and RIF."""
        pass

    @abstractmethod
    def list_third_parties(
        self,
        company_id: int,
        third_party_type: Optional[ThirdPartyType] = None,
        active_only: bool = True,
        search: Optional[str] = None,
    ) -> list[ThirdParty]:
        """List third parties with optional filters.

        Args:
            company_id: Company ID
            third_party_type: Optional type filter
            active_only: If True, skip deactivated third parties
            search: Optional substring matched against legal name, RIF and commercial name
        """
        pass

    @abstractmethod
    def update_third_party(
        self, third_party_id: int, changes: dict[str, Any], updated_by: Optional[int] = None
    ) -> None:
        """Apply patched fields to a third party."""
        pass

    @abstractmethod
    def set_third_party_active(
        self, third_party_id: int, is_active: bool, updated_by: Optional[int] = None
    ) -> None:
        """Activate or deactivate a third party."""
        pass

    # Period operations
    @abstractmethod
    def create_period(
        self,
        company_id: int,
        year: int,
        month: int,
        start_date: date,
        end_date: date,
        status: PeriodStatus = PeriodStatus.OPEN,
        created_by: Optional[int] = None,
    ) -> int:
        """Create a period. Returns period ID."""
        pass

    @abstractmethod
    def get_period(self, period_id: int, for_update: bool = False) -> Optional[Period]:
        """Get period by ID, optionally locking the row."""
        pass

    @abstractmethod
    def get_period_by_month(self, company_id: int, year: int, month: int) -> Optional[Period]:
        """Get a company's period for a year and month."""
        pass

    @abstractmethod
    def list_periods(
        self, company_id: int, year: Optional[int] = None, status: Optional[PeriodStatus] = None
    ) -> list[Period]:
        """List periods, newest first."""
        pass

    @abstractmethod
    def find_open_period(self, company_id: int) -> Optional[Period]:
        """Return the chronologically earliest OPEN period of a company."""
        pass

    @abstractmethod
    def set_period_status(
        self, period_id: int, status: PeriodStatus, user_id: Optional[int], note: Optional[str] = None
    ) -> None:
        """Change period status and stamp the matching audit fields."""
        pass

    @abstractmethod
    def get_approved_totals(self, period_id: int) -> tuple[Decimal, Decimal]:
        """Sum total debit and total credit of APPROVED entries in a period."""
        pass

    # Sequence operations
    @abstractmethod
    def next_sequence_value(self, company_id: int, document_type: str) -> int:
        """Claim the next counter value for a company and document type."""
        pass

    @abstractmethod
    def get_sequence_value(self, company_id: int, document_type: str) -> Optional[int]:
        """Read the current counter value without claiming one."""
        pass

    # Journal operations
    @abstractmethod
    def create_journal_entry(self, record: EntryRecord) -> int:
        """Write a header and all its lines. Returns entry ID."""
        pass

    @abstractmethod
    def get_journal_entry(self, entry_id: int, for_update: bool = False) -> Optional[JournalEntry]:
        """Get a journal entry with its lines."""
        pass

    @abstractmethod
    def list_journal_entries(
        self, company_id: int, filters: EntryFilters, offset: int = 0, limit: Optional[int] = None
    ) -> list[JournalEntry]:
        """List entry headers (without lines), newest first."""
        pass

    @abstractmethod
    def count_journal_entries(self, company_id: int, filters: EntryFilters) -> int:
        """Count entries matching the filters."""
        pass

    @abstractmethod
    def mark_entry_approved(self, entry_id: int, user_id: Optional[int]) -> None:
        """Set an entry APPROVED and stamp approver and time."""
        pass

    @abstractmethod
    def mark_entry_annulled(self, entry_id: int, user_id: Optional[int], reason: str) -> None:
        """Set an entry ANNULED and stamp annuller, time and reason."""
        pass
