"""Framework-neutral request handlers.

Every handler takes the database, the authenticated caller (or None) and a
JSON-like payload with PascalCase keys, and returns an :class:`ApiResponse`.
Wiring them to a web framework is left to the host application.
"""

import functools
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Optional, TypeVar

from contave.api.responses import (
    ApiResponse,
    error_response,
    ok,
    paginated,
    to_payload,
    unexpected_error,
)
from contave.config import Settings
from contave.database.base import Database
from contave.domain.account import AccountService
from contave.domain.auth import AuthService
from contave.domain.company import CompanyService
from contave.domain.entities import (
    AccountDraft,
    AccountNature,
    AccountPatch,
    AccountType,
    CompanyDraft,
    EntryDraft,
    EntryFilters,
    EntryStatus,
    EntryType,
    LineDraft,
    PeriodStatus,
    TaxCategory,
    ThirdPartyDraft,
    ThirdPartyPatch,
    ThirdPartyType,
    UserPatch,
)
from contave.domain.errors import DomainError, IncompleteDataError, ValidationError
from contave.domain.journal import JournalService
from contave.domain.period import PeriodService
from contave.domain.permissions import Caller, require, require_authenticated
from contave.domain.third_party import ThirdPartyService
from contave.domain.user import UserService
from contave.logging_config import get_logger
from contave.utils.amount_parser import parse_amount
from contave.utils.date_parser import parse_date

logger = get_logger(__name__)

Payload = dict[str, Any]
E = TypeVar("E", bound=Enum)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 200


def handler(
    func: Optional[Callable[..., ApiResponse]] = None,
    *,
    requires: Optional[tuple[str, str]] = None,
    authenticated: bool = False,
):
    """Turn exceptions raised by a handler into error responses.

    ``requires=(module, action)`` checks the permission, and
    ``authenticated=True`` checks only that there is a caller. Both checks
    run before the payload is read, so an anonymous or unauthorized request
    gets 401/403 whatever its body looks like.
    """

    def decorate(func: Callable[..., ApiResponse]) -> Callable[..., ApiResponse]:
        @functools.wraps(func)
        def wrapper(db: Database, caller: Optional[Caller], payload: Optional[Payload] = None, **kwargs):
            try:
                if requires is not None:
                    require(caller, *requires)
                elif authenticated:
                    require_authenticated(caller)
                return func(db, caller, payload or {}, **kwargs)
            except DomainError as e:
                logger.debug("request rejected", extra={"handler": func.__name__, "reason": str(e)})
                return error_response(e)
            except Exception:
                logger.exception("unexpected error in %s", func.__name__)
                return unexpected_error()

        return wrapper

    if func is not None:
        return decorate(func)
    return decorate


# Payload parsing


def _str(payload: Payload, key: str) -> Optional[str]:
    value = payload.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _int(payload: Payload, key: str) -> Optional[int]:
    value = payload.get(key)
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an integer, got '{value}'")


def _bool(payload: Payload, key: str) -> Optional[bool]:
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "y"):
        return True
    if text in ("0", "false", "no", "n"):
        return False
    raise ValidationError(f"{key} must be true or false, got '{value}'")


def _amount(payload: Payload, key: str) -> Optional[Decimal]:
    value = payload.get(key)
    if value is None or value == "":
        return None
    try:
        return parse_amount(value)
    except ValueError as e:
        raise ValidationError(f"{key}: {e}")


def _date(payload: Payload, key: str) -> Optional[date]:
    value = payload.get(key)
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return parse_date(str(value))
    except ValueError as e:
        raise ValidationError(f"{key}: {e}")


def _enum(payload: Payload, key: str, enum_cls: type[E]) -> Optional[E]:
    value = _str(payload, key)
    if value is None:
        return None
    try:
        return enum_cls(value.upper())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"{key} must be one of {allowed}, got '{value}'")


def _company_id(caller: Optional[Caller], payload: Payload) -> Optional[int]:
    """Company from the payload, falling back to the caller's current one."""
    company_id = _int(payload, "CompanyId")
    if company_id is None and caller is not None:
        company_id = caller.company_id
    return company_id


def _required_company(caller: Caller, payload: Payload) -> int:
    company_id = _company_id(caller, payload)
    if company_id is None:
        raise IncompleteDataError("CompanyId is required")
    return company_id


def _required_id(payload: Payload, key: str) -> int:
    value = _int(payload, key)
    if value is None:
        raise IncompleteDataError(f"{key} is required")
    return value


def _pagination(payload: Payload) -> tuple[int, int]:
    page = _int(payload, "Page") or 1
    page_size = _int(payload, "PageSize") or DEFAULT_PAGE_SIZE
    return max(page, 1), min(max(page_size, 1), MAX_PAGE_SIZE)


def _without_nones(values: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


# Authentication


@handler
def login(db: Database, caller: Optional[Caller], payload: Payload, settings: Optional[Settings] = None):
    """Exchange username (or email) and password for a token."""
    username = _str(payload, "Username")
    password = payload.get("Password")
    if not username or not password:
        raise IncompleteDataError("Username and password are required")

    auth = AuthService(db, settings)
    session = auth.authenticate(username, password)
    return ok(
        {
            "Token": auth.issue_token(session),
            "UserId": session.user_id,
            "Username": session.username,
            "CurrentCompanyId": session.company_id,
            "Permissions": sorted(session.permissions),
        }
    )


# Users


@handler(requires=("users", "view"))
def list_users(db: Database, caller: Optional[Caller], payload: Payload):
    """List users ordered by username."""
    users = UserService(db).list_users(caller, active_only=bool(_bool(payload, "ActiveOnly")))
    return ok([to_payload(u, id_key="UserId") for u in users])


@handler(requires=("users", "create"))
def create_user(db: Database, caller: Optional[Caller], payload: Payload, settings: Optional[Settings] = None):
    """Create a user, optionally with access to one company."""
    company_id = _int(payload, "CompanyId")
    user_id = UserService(db, settings).create_user(
        caller,
        username=_str(payload, "Username"),
        email=_str(payload, "Email"),
        password=payload.get("Password"),
        first_name=_str(payload, "FirstName"),
        last_name=_str(payload, "LastName"),
        company_id=company_id,
        role_name=_str(payload, "RoleName"),
    )
    return ok({"UserId": user_id}, message="User created")


@handler(requires=("users", "edit"))
def update_user(db: Database, caller: Optional[Caller], payload: Payload, settings: Optional[Settings] = None):
    """Update the editable fields of a user. Unknown keys are ignored."""
    user_id = _required_id(payload, "UserId")
    patch = UserPatch(
        email=_str(payload, "Email"),
        first_name=_str(payload, "FirstName"),
        last_name=_str(payload, "LastName"),
        is_active=_bool(payload, "IsActive"),
        is_blocked=_bool(payload, "IsBlocked"),
    )
    UserService(db, settings).update_user(caller, user_id, patch, password=payload.get("Password") or None)
    return ok(message="User updated")


@handler(requires=("users", "delete"))
def delete_user(db: Database, caller: Optional[Caller], payload: Payload):
    """Deactivate a user."""
    UserService(db).deactivate_user(caller, _required_id(payload, "UserId"))
    return ok(message="User deactivated")


@handler(requires=("roles", "create"))
def create_role(db: Database, caller: Optional[Caller], payload: Payload):
    """Create a role from a list of ``module:action`` strings."""
    permissions = payload.get("Permissions") or []
    if not isinstance(permissions, list):
        raise ValidationError("Permissions must be a list")
    role_id = UserService(db).create_role(
        caller, _str(payload, "RoleName"), [str(p) for p in permissions], _str(payload, "Description")
    )
    return ok({"RoleId": role_id}, message="Role created")


@handler(requires=("users", "edit"))
def grant_company_access(db: Database, caller: Optional[Caller], payload: Payload):
    """Give a user access to a company through a role."""
    role_name = _str(payload, "RoleName")
    if role_name is None:
        raise IncompleteDataError("RoleName is required")
    UserService(db).grant_company(
        caller,
        _required_id(payload, "UserId"),
        _required_id(payload, "CompanyId"),
        role_name,
        is_default=bool(_bool(payload, "IsDefault")),
    )
    return ok(message="Company access granted")


# Companies


@handler(authenticated=True)
def list_companies(db: Database, caller: Optional[Caller], payload: Payload):
    """List the companies visible to the caller."""
    companies = CompanyService(db).list_companies(caller)
    return ok([to_payload(c, id_key="CompanyId") for c in companies])


@handler(requires=("companies", "create"))
def create_company(db: Database, caller: Optional[Caller], payload: Payload):
    """Create a company with its periods for the current year."""
    aliquots = _without_nones(
        {
            "iva_aliquot": _amount(payload, "IVAAliquot"),
            "reduced_iva_aliquot": _amount(payload, "ReducedIVAAliquot"),
            "additional_iva_aliquot": _amount(payload, "AdditionalIVAAliquot"),
            "igtf_aliquot": _amount(payload, "IGTFAliquot"),
            "retention_percentage": _amount(payload, "RetentionPercentage"),
            "islr_retention_percentage": _amount(payload, "ISLRRetentionPercentage"),
            "functional_currency": _str(payload, "FunctionalCurrency"),
            "secondary_currency": _str(payload, "SecondaryCurrency"),
        }
    )
    draft = CompanyDraft(
        code=_str(payload, "CompanyCode"),
        legal_name=_str(payload, "LegalName"),
        rif=_str(payload, "RIF"),
        fiscal_address=_str(payload, "FiscalAddress"),
        commercial_name=_str(payload, "CommercialName"),
        phone=_str(payload, "Phone"),
        email=_str(payload, "Email"),
        activity=_str(payload, "Activity"),
        **aliquots,
    )
    company_id = CompanyService(db).create_company(caller, draft)
    return ok({"CompanyId": company_id}, message="Company created")


# Chart of accounts


@handler(authenticated=True)
def list_accounts(db: Database, caller: Optional[Caller], payload: Payload):
    """List a company's accounts ordered by code."""
    company_id = _required_company(caller, payload)
    active_only = _bool(payload, "ActiveOnly")
    accounts = AccountService(db).list_accounts(
        company_id, active_only=True if active_only is None else active_only
    )
    return ok([to_payload(a, id_key="AccountId") for a in accounts])


@handler(requires=("accounts", "create"))
def create_account(db: Database, caller: Optional[Caller], payload: Payload):
    """Create an account."""
    flags = _without_nones(
        {
            "requires_movement": _bool(payload, "RequiresMovement"),
            "requires_third_party": _bool(payload, "RequiresThirdParty"),
            "requires_cost_center": _bool(payload, "RequiresCostCenter"),
            "allows_manual_entry": _bool(payload, "AllowsManualEntry"),
            "is_cash_flow_item": _bool(payload, "IsCashFlowItem"),
        }
    )
    draft = AccountDraft(
        company_id=_company_id(caller, payload),
        code=_str(payload, "AccountCode"),
        name=_str(payload, "AccountName"),
        nature=_enum(payload, "Nature", AccountNature),
        account_type=_enum(payload, "AccountType", AccountType),
        parent_id=_int(payload, "ParentAccountId"),
        currency=_str(payload, "Currency"),
        **flags,
    )
    account_id = AccountService(db).create_account(caller, draft)
    return ok({"AccountId": account_id}, message="Account created")


@handler(requires=("accounts", "edit"))
def update_account(db: Database, caller: Optional[Caller], payload: Payload):
    """Update the editable fields of an account. Unknown keys are ignored."""
    account_id = _required_id(payload, "AccountId")
    patch = AccountPatch(
        name=_str(payload, "AccountName"),
        nature=_enum(payload, "Nature", AccountNature),
        account_type=_enum(payload, "AccountType", AccountType),
        requires_movement=_bool(payload, "RequiresMovement"),
        requires_third_party=_bool(payload, "RequiresThirdParty"),
        requires_cost_center=_bool(payload, "RequiresCostCenter"),
        allows_manual_entry=_bool(payload, "AllowsManualEntry"),
        currency=_str(payload, "Currency"),
        is_cash_flow_item=_bool(payload, "IsCashFlowItem"),
    )
    AccountService(db).update_account(caller, account_id, patch)
    return ok(message="Account updated")


@handler(requires=("accounts", "delete"))
def delete_account(db: Database, caller: Optional[Caller], payload: Payload):
    """Deactivate an account."""
    AccountService(db).deactivate_account(caller, _required_id(payload, "AccountId"))
    return ok(message="Account deactivated")


# Third parties


@handler(authenticated=True)
def list_third_parties(db: Database, caller: Optional[Caller], payload: Payload):
    """List a company's third parties with optional type and text filters."""
    company_id = _required_company(caller, payload)
    active_only = _bool(payload, "ActiveOnly")
    third_parties = ThirdPartyService(db).list_third_parties(
        company_id,
        third_party_type=_enum(payload, "Type", ThirdPartyType),
        active_only=True if active_only is None else active_only,
        search=_str(payload, "Search"),
    )
    return ok([to_payload(tp, id_key="ThirdPartyId") for tp in third_parties])


@handler(requires=("thirdparties", "create"))
def create_third_party(db: Database, caller: Optional[Caller], payload: Payload):
    """Create a third party."""
    options = _without_nones(
        {
            "tax_category": _enum(payload, "TaxCategory", TaxCategory),
            "is_withholding_agent": _bool(payload, "IsWithholdingAgent"),
            "iva_applicable": _bool(payload, "IVAApplicable"),
            "islr_applicable": _bool(payload, "ISLRApplicable"),
        }
    )
    draft = ThirdPartyDraft(
        company_id=_company_id(caller, payload),
        third_party_type=_enum(payload, "ThirdPartyType", ThirdPartyType),
        rif=_str(payload, "RIF"),
        legal_name=_str(payload, "LegalName"),
        commercial_name=_str(payload, "CommercialName"),
        fiscal_address=_str(payload, "FiscalAddress"),
        phone=_str(payload, "Phone"),
        email=_str(payload, "Email"),
        contact_person=_str(payload, "ContactPerson"),
        **options,
    )
    third_party_id = ThirdPartyService(db).create_third_party(caller, draft)
    return ok({"ThirdPartyId": third_party_id}, message="Third party created")


@handler(requires=("thirdparties", "edit"))
def update_third_party(db: Database, caller: Optional[Caller], payload: Payload):
    """Update the editable fields of a third party. Unknown keys are ignored."""
    third_party_id = _required_id(payload, "ThirdPartyId")
    patch = ThirdPartyPatch(
        third_party_type=_enum(payload, "ThirdPartyType", ThirdPartyType),
        legal_name=_str(payload, "LegalName"),
        commercial_name=_str(payload, "CommercialName"),
        fiscal_address=_str(payload, "FiscalAddress"),
        phone=_str(payload, "Phone"),
        email=_str(payload, "Email"),
        contact_person=_str(payload, "ContactPerson"),
        tax_category=_enum(payload, "TaxCategory", TaxCategory),
        is_withholding_agent=_bool(payload, "IsWithholdingAgent"),
        iva_applicable=_bool(payload, "IVAApplicable"),
        islr_applicable=_bool(payload, "ISLRApplicable"),
    )
    ThirdPartyService(db).update_third_party(caller, third_party_id, patch)
    return ok(message="Third party updated")


@handler(requires=("thirdparties", "delete"))
def delete_third_party(db: Database, caller: Optional[Caller], payload: Payload):
    """Deactivate a third party."""
    ThirdPartyService(db).deactivate_third_party(caller, _required_id(payload, "ThirdPartyId"))
    return ok(message="Third party deactivated")


# Periods


@handler(authenticated=True)
def list_periods(db: Database, caller: Optional[Caller], payload: Payload):
    """List a company's periods, newest first."""
    periods = PeriodService(db).list_periods(
        _required_company(caller, payload),
        year=_int(payload, "Year"),
        status=_enum(payload, "Status", PeriodStatus),
    )
    return ok([to_payload(p, id_key="PeriodId") for p in periods])


@handler(requires=("periods", "close"))
def close_period(db: Database, caller: Optional[Caller], payload: Payload):
    """Close a period."""
    PeriodService(db).close(caller, _required_id(payload, "PeriodId"), _str(payload, "Notes"))
    return ok(message="Period closed")


@handler(requires=("periods", "reopen"))
def reopen_period(db: Database, caller: Optional[Caller], payload: Payload):
    """Reopen a closed period."""
    PeriodService(db).reopen(caller, _required_id(payload, "PeriodId"), _str(payload, "Notes"))
    return ok(message="Period reopened")


@handler(requires=("periods", "create"))
def create_fiscal_year(db: Database, caller: Optional[Caller], payload: Payload):
    """Create the twelve periods of a year."""
    period_ids = PeriodService(db).create_fiscal_year(
        caller, _required_company(caller, payload), _required_id(payload, "Year")
    )
    return ok({"PeriodIds": period_ids}, message="Fiscal year created")


# Journal


def _line_draft(index: int, raw: Any) -> LineDraft:
    if not isinstance(raw, dict):
        raise ValidationError(f"Line {index} must be an object")
    account_id = _int(raw, "AccountId")
    if account_id is None:
        raise IncompleteDataError(f"Line {index}: AccountId is required")
    return LineDraft(
        account_id=account_id,
        debit=_amount(raw, "Debit") or Decimal("0"),
        credit=_amount(raw, "Credit") or Decimal("0"),
        third_party_id=_int(raw, "ThirdPartyId"),
        cost_center_id=_int(raw, "CostCenterId"),
        description=_str(raw, "Description"),
        currency=_str(raw, "Currency"),
        exchange_rate=_amount(raw, "ExchangeRate"),
        reference=_str(raw, "Reference"),
        tax_base=_amount(raw, "TaxBase") or Decimal("0"),
        iva_amount=_amount(raw, "IVAAmount") or Decimal("0"),
        igtf_amount=_amount(raw, "IGTFAmount") or Decimal("0"),
        is_igtf_applicable=bool(_bool(raw, "IsIGTFApplicable")),
    )


def _entry_payload(entry) -> dict[str, Any]:
    body = to_payload(entry, id_key="EntryId")
    body["Lines"] = [to_payload(line, id_key="LineId") for line in entry.lines]
    return body


@handler(authenticated=True)
def list_journal_entries(db: Database, caller: Optional[Caller], payload: Payload):
    """List entry headers with filters and pagination."""
    company_id = _required_company(caller, payload)
    filters = EntryFilters(
        period_id=_int(payload, "PeriodId"),
        status=_enum(payload, "Status", EntryStatus),
        entry_type=_enum(payload, "Type", EntryType),
        date_from=_date(payload, "DateFrom"),
        date_to=_date(payload, "DateTo"),
        search=_str(payload, "Search"),
    )
    page, page_size = _pagination(payload)

    journal = JournalService(db)
    total = journal.count_entries(company_id, filters)
    entries = journal.list_entries(company_id, filters, offset=(page - 1) * page_size, limit=page_size)

    data = []
    for entry in entries:
        body = to_payload(entry, id_key="EntryId")
        del body["Lines"]
        data.append(body)
    return paginated(data, total, page, page_size)


@handler(authenticated=True)
def get_journal_entry(db: Database, caller: Optional[Caller], payload: Payload):
    """Return one entry with its lines."""
    entry = JournalService(db).get_entry(_required_id(payload, "EntryId"))
    return ok(_entry_payload(entry))


@handler(requires=("journal", "create"))
def create_journal_entry(
    db: Database, caller: Optional[Caller], payload: Payload, settings: Optional[Settings] = None
):
    """Post a new DRAFT entry."""
    raw_lines = payload.get("Lines") or []
    if not isinstance(raw_lines, list):
        raise ValidationError("Lines must be a list")

    draft = EntryDraft(
        company_id=_company_id(caller, payload),
        entry_date=_date(payload, "EntryDate"),
        description=_str(payload, "Description"),
        lines=tuple(_line_draft(i, raw) for i, raw in enumerate(raw_lines, start=1)),
        entry_type=_enum(payload, "EntryType", EntryType) or EntryType.DAILY,
        period_id=_int(payload, "PeriodId"),
        reference=_str(payload, "Reference"),
        currency=_str(payload, "Currency"),
        exchange_rate=_amount(payload, "ExchangeRate"),
    )
    default_currency = (settings or Settings()).default_currency
    posted = JournalService(db, default_currency=default_currency).create_entry(caller, draft)
    return ok(
        {"EntryId": posted.entry_id, "EntryNumber": posted.entry_number},
        message=f"Entry {posted.entry_number} created",
    )


@handler(requires=("journal", "approve"))
def approve_journal_entry(db: Database, caller: Optional[Caller], payload: Payload):
    """Approve a DRAFT entry."""
    JournalService(db).approve_entry(caller, _required_id(payload, "EntryId"))
    return ok(message="Entry approved")


@handler(requires=("journal", "annul"))
def annul_journal_entry(db: Database, caller: Optional[Caller], payload: Payload):
    """Annul an APPROVED entry."""
    JournalService(db).annul_entry(caller, _required_id(payload, "EntryId"), _str(payload, "Reason"))
    return ok(message="Entry annulled")


@handler(requires=("journal", "reverse"))
def reverse_journal_entry(db: Database, caller: Optional[Caller], payload: Payload):
    """Post the reversal of an entry."""
    posted = JournalService(db).reverse_entry(caller, _required_id(payload, "EntryId"))
    return ok(
        {"EntryId": posted.entry_id, "EntryNumber": posted.entry_number},
        message=f"Reversal {posted.entry_number} created",
    )
