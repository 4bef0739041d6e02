"""Chart of accounts commands."""

import click

from contave.cli.error_handling import handle_domain_error
from contave.cli.session import company_option, current_caller, resolve_company_or_exit
from contave.domain.account import AccountService
from contave.domain.entities import AccountDraft, AccountNature, AccountPatch, AccountType
from contave.domain.errors import DomainError
from contave.utils.account_resolver import resolve_account

NATURES = [n.value for n in AccountNature]
TYPES = [t.value for t in AccountType]


def _resolve_or_exit(ctx, service: AccountService, company_id: int, account: str) -> int:
    try:
        return resolve_account(service, company_id, account)
    except DomainError as e:
        handle_domain_error(ctx, e)


@click.group()
def account_group():
    """Manage the chart of accounts."""
    pass


@account_group.command("create")
@click.argument("code", metavar="CODE")
@click.argument("name", metavar="NAME")
@click.option("--nature", type=click.Choice(NATURES, case_sensitive=False), required=True)
@click.option("--type", "account_type", type=click.Choice(TYPES, case_sensitive=False), required=True)
@click.option("--parent", help="Parent account code or ID")
@click.option("--currency", help="Account currency (defaults to VES)")
@click.option("--requires-third-party", is_flag=True, help="Lines must name a third party")
@click.option("--requires-cost-center", is_flag=True, help="Lines must name a cost center")
@click.option("--no-manual-entry", is_flag=True, help="Only automatic postings may use it")
@company_option
@click.pass_context
def create_account(
    ctx,
    code: str,
    name: str,
    nature: str,
    account_type: str,
    parent: str | None,
    currency: str | None,
    requires_third_party: bool,
    requires_cost_center: bool,
    no_manual_entry: bool,
    company_id: int | None,
):
    """Create an account.

    Examples:
        contave account create 1 "ACTIVO" --nature DEBIT --type ASSET
        contave account create 1101 "Caja" --nature DEBIT --type ASSET --parent 1
    """
    db = ctx.obj["db"]
    service = AccountService(db)
    company_id = resolve_company_or_exit(ctx, company_id)

    parent_id = _resolve_or_exit(ctx, service, company_id, parent) if parent else None

    draft = AccountDraft(
        company_id=company_id,
        code=code,
        name=name,
        nature=AccountNature(nature.upper()),
        account_type=AccountType(account_type.upper()),
        parent_id=parent_id,
        requires_third_party=requires_third_party,
        requires_cost_center=requires_cost_center,
        allows_manual_entry=not no_manual_entry,
        currency=currency,
    )
    try:
        account_id = service.create_account(current_caller(ctx), draft)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Created account {code} '{name}' (ID: {account_id})")


@account_group.command("list")
@click.option("--all", "show_all", is_flag=True, help="Include deactivated accounts")
@company_option
@click.pass_context
def list_accounts(ctx, show_all: bool, company_id: int | None):
    """List accounts ordered by code, indented by level."""
    db = ctx.obj["db"]
    service = AccountService(db)
    company_id = resolve_company_or_exit(ctx, company_id)

    accounts = service.list_accounts(company_id, active_only=not show_all)
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 70)
    for acc in accounts:
        indent = "  " * (acc.level - 1)
        status = "" if acc.is_active else " (inactive)"
        click.echo(f"{indent}{acc.code:12s} {acc.name} [{acc.nature.value}/{acc.account_type.value}]{status}")


@account_group.command("update")
@click.argument("account", metavar="ACCOUNT")
@click.option("--name", help="New account name")
@click.option("--nature", type=click.Choice(NATURES, case_sensitive=False))
@click.option("--type", "account_type", type=click.Choice(TYPES, case_sensitive=False))
@click.option("--currency")
@click.option("--manual-entry/--no-manual-entry", default=None, help="Allow manual postings")
@company_option
@click.pass_context
def update_account(
    ctx,
    account: str,
    name: str | None,
    nature: str | None,
    account_type: str | None,
    currency: str | None,
    manual_entry: bool | None,
    company_id: int | None,
):
    """Update an account. Code and parent cannot be changed.

    ACCOUNT can be an account code or ID.

    Examples:
        contave account update 1101 --name "Caja Principal"
    """
    db = ctx.obj["db"]
    service = AccountService(db)
    company_id = resolve_company_or_exit(ctx, company_id)
    account_id = _resolve_or_exit(ctx, service, company_id, account)

    patch = AccountPatch(
        name=name,
        nature=AccountNature(nature.upper()) if nature else None,
        account_type=AccountType(account_type.upper()) if account_type else None,
        currency=currency,
        allows_manual_entry=manual_entry,
    )
    if not patch.changes():
        click.echo("Nothing to update.")
        return

    try:
        service.update_account(current_caller(ctx), account_id, patch)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Updated account {account}")


@account_group.command("deactivate")
@click.argument("account", metavar="ACCOUNT")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@company_option
@click.pass_context
def deactivate_account(ctx, account: str, yes: bool, company_id: int | None):
    """Deactivate an account. Existing entries keep referring to it.

    ACCOUNT can be an account code or ID.
    """
    db = ctx.obj["db"]
    service = AccountService(db)
    company_id = resolve_company_or_exit(ctx, company_id)
    account_id = _resolve_or_exit(ctx, service, company_id, account)
    account_obj = service.get_account(account_id)

    if not yes and not click.confirm(
        f"Are you sure you want to deactivate account {account_obj.code} '{account_obj.name}'?"
    ):
        click.echo("Cancelled.")
        return

    try:
        service.deactivate_account(current_caller(ctx), account_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Deactivated account {account_obj.code}")


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
