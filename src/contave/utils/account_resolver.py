"""Utility for resolving account codes to IDs."""

from contave.domain.account import AccountService
from contave.domain.errors import NotFoundError


def resolve_account(account_service: AccountService, company_id: int, account: str | int) -> int:
    """Resolve an account code or ID to an account ID.

    Codes win: ``"1101"`` is looked up as a code first and only then as an ID.
    An int is always an ID.

    Args:
        account_service: AccountService instance
        company_id: Company the account must belong to
        account: Account code (str) or ID

    Returns:
        Account ID

    Raises:
        NotFoundError: If no account matches in the company
    """
    if isinstance(account, int):
        return account_service.resolve(company_id, account).id

    account_obj = account_service.get_account_by_code(company_id, account.strip())
    if account_obj is not None:
        return account_obj.id

    try:
        account_id = int(account)
    except ValueError:
        raise NotFoundError(f"Account '{account}' not found")
    return account_service.resolve(company_id, account_id).id
