"""Company management commands."""

import click

from contave.cli.error_handling import handle_domain_error
from contave.cli.session import current_caller
from contave.domain.company import CompanyService
from contave.domain.entities import CompanyDraft
from contave.domain.errors import DomainError


@click.group()
def company_group():
    """Manage companies."""
    pass


@company_group.command("create")
@click.argument("code", metavar="CODE")
@click.argument("legal_name", metavar="LEGAL_NAME")
@click.option("--rif", required=True, help="Tax ID, e.g. J-12345678-9")
@click.option("--address", "fiscal_address", required=True, help="Fiscal address")
@click.option("--commercial-name", help="Trade name")
@click.option("--phone")
@click.option("--email")
@click.option("--activity", help="Economic activity")
@click.pass_context
def create_company(
    ctx,
    code: str,
    legal_name: str,
    rif: str,
    fiscal_address: str,
    commercial_name: str | None,
    phone: str | None,
    email: str | None,
    activity: str | None,
):
    """Create a company.

    You become its administrator, and the twelve periods of the current
    year are opened.

    Examples:
        contave company create ACME "Acme C.A." --rif J-12345678-9 --address "Caracas"
    """
    db = ctx.obj["db"]
    service = CompanyService(db)

    draft = CompanyDraft(
        code=code,
        legal_name=legal_name,
        rif=rif,
        fiscal_address=fiscal_address,
        commercial_name=commercial_name,
        phone=phone,
        email=email,
        activity=activity,
    )
    try:
        company_id = service.create_company(current_caller(ctx), draft)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Created company '{legal_name}' (ID: {company_id})")


@company_group.command("list")
@click.pass_context
def list_companies(ctx):
    """List the companies you can access."""
    db = ctx.obj["db"]
    service = CompanyService(db)

    try:
        companies = service.list_companies(current_caller(ctx))
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not companies:
        click.echo("No companies found.")
        return

    click.echo("\nCompanies:")
    click.echo("-" * 70)
    for c in companies:
        click.echo(f"ID: {c.id:3d} | {c.code:10s} | {c.rif:14s} | {c.legal_name}")


def register_commands(cli):
    """Register company commands with main CLI."""
    cli.add_command(company_group, name="company")
