"""Shared domain error messages and error types."""

from decimal import Decimal


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class IncompleteDataError(ValidationError):
    """A required field is missing or empty."""


class NoOpenPeriodError(ValidationError):
    """The company has no OPEN accounting period."""


class PeriodClosedError(ValidationError):
    """The target period does not accept postings."""


class UnbalancedEntryError(ValidationError):
    """Debits and credits do not match.

    Carries both totals so callers can show the discrepancy.
    """

    def __init__(self, total_debit: Decimal, total_credit: Decimal, message: str | None = None):
        self.total_debit = total_debit
        self.total_credit = total_credit
        super().__init__(message or unbalanced(total_debit, total_credit))


class ReasonRequiredError(ValidationError):
    """An annulment was requested without a reason."""


class NextPeriodOpenError(ValidationError):
    """A period cannot be reopened while the following one is OPEN."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class InvalidStateError(DomainError):
    """The entity is not in a state that allows the requested transition."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class AuthError(DomainError):
    """Base class for authentication and authorization failures."""


class UnauthenticatedError(AuthError):
    """No valid caller identity."""


class ForbiddenError(AuthError):
    """Caller identity present but the permission is missing."""


def company_not_found(company_id: int) -> str:
    """Return message for missing company."""
    return f"Company {company_id} not found"


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def third_party_not_found(third_party_id: int) -> str:
    """Return message for missing third party."""
    return f"Third party {third_party_id} not found"


def period_not_found(period_id: int) -> str:
    """Return message for missing period."""
    return f"Period {period_id} not found"


def entry_not_found(entry_id: int) -> str:
    """Return message for missing journal entry."""
    return f"Journal entry {entry_id} not found"


def user_not_found(user_id: int) -> str:
    """Return message for missing user."""
    return f"User {user_id} not found"


def duplicate_account_code(code: str, company_id: int) -> str:
    """Return message for duplicate account code within a company."""
    return f"Account with code '{code}' already exists for company {company_id}"


def duplicate_rif(rif: str, company_id: int) -> str:
    """Return message for duplicate third-party RIF within a company."""
    return f"Third party with RIF '{rif}' already exists for company {company_id}"


def unbalanced(total_debit: Decimal, total_credit: Decimal) -> str:
    """Return message for an entry whose debits and credits differ."""
    return f"Entry is unbalanced. Total debit: {total_debit}, total credit: {total_credit}"


def missing_fields(fields: list[str]) -> str:
    """Return message listing required fields that were not supplied."""
    return f"Incomplete data: {', '.join(fields)} required"


def permission_denied(module: str, action: str) -> str:
    """Return message when a caller lacks a permission."""
    return f"Permission '{module}:{action}' required"
