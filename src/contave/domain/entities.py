"""Domain model entities for contave.

These are pure data classes representing accounting concepts, independent of
the database schema. Services and handlers only ever see these; ORM rows stay
inside the database package.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional


class AccountNature(str, Enum):
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


class AccountType(str, Enum):
    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    OFFBALANCE = "OFFBALANCE"


class ThirdPartyType(str, Enum):
    CUSTOMER = "CUSTOMER"
    SUPPLIER = "SUPPLIER"
    EMPLOYEE = "EMPLOYEE"
    OTHER = "OTHER"


class TaxCategory(str, Enum):
    ORDINARY = "ORDINARY"
    SPECIAL = "SPECIAL"
    EXEMPT = "EXEMPT"


class PeriodStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    LOCKED = "LOCKED"


class EntryType(str, Enum):
    DAILY = "DAILY"
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    ADJUSTMENT = "ADJUSTMENT"
    CLOSING = "CLOSING"


class EntryStatus(str, Enum):
    DRAFT = "DRAFT"
    APPROVED = "APPROVED"
    ANNULED = "ANNULED"


@dataclass(frozen=True)
class Company:
    """Company (legal entity) keeping its own books."""

    id: int
    code: str
    legal_name: str
    rif: str
    fiscal_address: str
    commercial_name: Optional[str]
    phone: Optional[str]
    email: Optional[str]
    activity: Optional[str]
    functional_currency: str
    secondary_currency: str
    iva_aliquot: Decimal
    reduced_iva_aliquot: Decimal
    additional_iva_aliquot: Decimal
    igtf_aliquot: Decimal
    retention_percentage: Decimal
    islr_retention_percentage: Decimal
    is_active: bool
    created_at: datetime


@dataclass(frozen=True)
class User:
    """Application user."""

    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    is_active: bool
    is_blocked: bool
    failed_login_attempts: int
    last_login_at: Optional[datetime]
    created_at: datetime


@dataclass(frozen=True)
class Role:
    """Named set of ``module:action`` permission strings."""

    id: int
    name: str
    description: Optional[str]
    permissions: frozenset[str]


@dataclass(frozen=True)
class Membership:
    """A user's access to one company through a role."""

    user_id: int
    company_id: int
    role_id: int
    is_default: bool
    is_active: bool


@dataclass(frozen=True)
class Account:
    """Chart of accounts entry.

    Accounts form a tree through ``parent_id``; ``level`` is fixed when the
    account is created.
    """

    id: int
    company_id: int
    code: str
    name: str
    parent_id: Optional[int]
    level: int
    nature: AccountNature
    account_type: AccountType
    requires_movement: bool
    requires_third_party: bool
    requires_cost_center: bool
    allows_manual_entry: bool
    currency: str
    is_cash_flow_item: bool
    is_active: bool
    created_at: datetime


@dataclass(frozen=True)
class ThirdParty:
    """Customer, supplier, employee or other counterpart."""

    id: int
    company_id: int
    third_party_type: ThirdPartyType
    rif: str
    legal_name: str
    commercial_name: Optional[str]
    fiscal_address: Optional[str]
    phone: Optional[str]
    email: Optional[str]
    contact_person: Optional[str]
    tax_category: TaxCategory
    is_withholding_agent: bool
    iva_applicable: bool
    islr_applicable: bool
    is_active: bool
    created_at: datetime


@dataclass(frozen=True)
class Period:
    """Monthly accounting period."""

    id: int
    company_id: int
    year: int
    month: int
    start_date: date
    end_date: date
    status: PeriodStatus
    closed_by: Optional[int] = None
    closed_at: Optional[datetime] = None
    closing_note: Optional[str] = None
    reopened_by: Optional[int] = None
    reopened_at: Optional[datetime] = None
    reopening_note: Optional[str] = None


@dataclass(frozen=True)
class JournalLine:
    """One debit or credit movement inside a journal entry."""

    id: int
    entry_id: int
    line_number: int
    account_id: int
    third_party_id: Optional[int]
    cost_center_id: Optional[int]
    description: Optional[str]
    debit: Decimal
    credit: Decimal
    currency: str
    exchange_rate: Decimal
    base_amount: Decimal
    reference: Optional[str] = None
    tax_base: Decimal = Decimal("0")
    iva_amount: Decimal = Decimal("0")
    igtf_amount: Decimal = Decimal("0")
    is_igtf_applicable: bool = False


@dataclass(frozen=True)
class JournalEntry:
    """Journal entry header with its lines."""

    id: int
    company_id: int
    period_id: int
    entry_type: EntryType
    entry_number: str
    entry_date: date
    description: str
    reference: Optional[str]
    status: EntryStatus
    total_debit: Decimal
    total_credit: Decimal
    currency: str
    exchange_rate: Decimal
    created_by: Optional[int]
    created_at: datetime
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    annulled_by: Optional[int] = None
    annulled_at: Optional[datetime] = None
    annulment_reason: Optional[str] = None
    reverses_entry_id: Optional[int] = None
    lines: tuple[JournalLine, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class LineDraft:
    """Input for one journal line before it is persisted."""

    account_id: int
    debit: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")
    third_party_id: Optional[int] = None
    cost_center_id: Optional[int] = None
    description: Optional[str] = None
    currency: Optional[str] = None
    exchange_rate: Optional[Decimal] = None
    reference: Optional[str] = None
    tax_base: Decimal = Decimal("0")
    iva_amount: Decimal = Decimal("0")
    igtf_amount: Decimal = Decimal("0")
    is_igtf_applicable: bool = False


@dataclass(frozen=True)
class EntryDraft:
    """Input for a new journal entry."""

    company_id: Optional[int]
    entry_date: Optional[date]
    description: Optional[str]
    lines: tuple[LineDraft, ...]
    entry_type: EntryType = EntryType.DAILY
    period_id: Optional[int] = None
    reference: Optional[str] = None
    currency: Optional[str] = None
    exchange_rate: Optional[Decimal] = None


@dataclass(frozen=True)
class EntryFilters:
    """Filters for listing journal entries."""

    period_id: Optional[int] = None
    status: Optional[EntryStatus] = None
    entry_type: Optional[EntryType] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    search: Optional[str] = None


@dataclass(frozen=True)
class PostedEntry:
    """Result of creating or reversing an entry."""

    entry_id: int
    entry_number: str


@dataclass(frozen=True)
class CompanyDraft:
    """Input for a new company. Unset aliquots fall back to current law."""

    code: Optional[str]
    legal_name: Optional[str]
    rif: Optional[str]
    fiscal_address: Optional[str]
    commercial_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    activity: Optional[str] = None
    functional_currency: str = "VES"
    secondary_currency: str = "USD"
    iva_aliquot: Decimal = Decimal("16.00")
    reduced_iva_aliquot: Decimal = Decimal("8.00")
    additional_iva_aliquot: Decimal = Decimal("31.50")
    igtf_aliquot: Decimal = Decimal("3.00")
    retention_percentage: Decimal = Decimal("75.00")
    islr_retention_percentage: Decimal = Decimal("2.00")


@dataclass(frozen=True)
class AccountDraft:
    """Input for a new chart-of-accounts entry."""

    company_id: Optional[int]
    code: Optional[str]
    name: Optional[str]
    nature: Optional[AccountNature]
    account_type: Optional[AccountType]
    parent_id: Optional[int] = None
    requires_movement: bool = False
    requires_third_party: bool = False
    requires_cost_center: bool = False
    allows_manual_entry: bool = True
    currency: Optional[str] = None
    is_cash_flow_item: bool = False


@dataclass(frozen=True)
class AccountPatch:
    """Updatable account fields. ``None`` leaves a field unchanged.

    Code, parent and level are fixed at creation and cannot be patched.
    """

    name: Optional[str] = None
    nature: Optional[AccountNature] = None
    account_type: Optional[AccountType] = None
    requires_movement: Optional[bool] = None
    requires_third_party: Optional[bool] = None
    requires_cost_center: Optional[bool] = None
    allows_manual_entry: Optional[bool] = None
    currency: Optional[str] = None
    is_cash_flow_item: Optional[bool] = None

    def changes(self) -> dict[str, object]:
        """Return only the fields that were set."""
        return {name: value for name, value in vars(self).items() if value is not None}


@dataclass(frozen=True)
class ThirdPartyDraft:
    """Input for a new third party."""

    company_id: Optional[int]
    third_party_type: Optional[ThirdPartyType]
    rif: Optional[str]
    legal_name: Optional[str]
    commercial_name: Optional[str] = None
    fiscal_address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    contact_person: Optional[str] = None
    tax_category: TaxCategory = TaxCategory.ORDINARY
    is_withholding_agent: bool = False
    iva_applicable: bool = True
    islr_applicable: bool = True


@dataclass(frozen=True)
class ThirdPartyPatch:
    """Updatable third-party fields. ``None`` leaves a field unchanged.

    The RIF identifies the third party within its company and is not patchable.
    """

    third_party_type: Optional[ThirdPartyType] = None
    legal_name: Optional[str] = None
    commercial_name: Optional[str] = None
    fiscal_address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    contact_person: Optional[str] = None
    tax_category: Optional[TaxCategory] = None
    is_withholding_agent: Optional[bool] = None
    iva_applicable: Optional[bool] = None
    islr_applicable: Optional[bool] = None

    def changes(self) -> dict[str, object]:
        """Return only the fields that were set."""
        return {name: value for name, value in vars(self).items() if value is not None}


@dataclass(frozen=True)
class UserPatch:
    """Updatable user fields. ``None`` leaves a field unchanged.

    The username is the login name and is not patchable. Passwords are set
    through their own call so the hash never travels in a patch.
    """

    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_active: Optional[bool] = None
    is_blocked: Optional[bool] = None

    def changes(self) -> dict[str, object]:
        """Return only the fields that were set."""
        return {name: value for name, value in vars(self).items() if value is not None}


@dataclass(frozen=True)
class LineRecord:
    """Fully resolved journal line ready to be written."""

    line_number: int
    account_id: int
    third_party_id: Optional[int]
    cost_center_id: Optional[int]
    description: Optional[str]
    debit: Decimal
    credit: Decimal
    currency: str
    exchange_rate: Decimal
    base_amount: Decimal
    reference: Optional[str] = None
    tax_base: Decimal = Decimal("0")
    iva_amount: Decimal = Decimal("0")
    igtf_amount: Decimal = Decimal("0")
    is_igtf_applicable: bool = False


@dataclass(frozen=True)
class EntryRecord:
    """Fully resolved journal entry header ready to be written."""

    company_id: int
    period_id: int
    entry_type: EntryType
    entry_number: str
    entry_date: date
    description: str
    reference: Optional[str]
    status: EntryStatus
    total_debit: Decimal
    total_credit: Decimal
    currency: str
    exchange_rate: Decimal
    created_by: Optional[int]
    lines: tuple[LineRecord, ...]
    reverses_entry_id: Optional[int] = None
