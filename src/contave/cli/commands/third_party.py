"""Third party commands."""

import click

from contave.cli.error_handling import handle_domain_error
from contave.cli.session import company_option, current_caller, resolve_company_or_exit
from contave.domain.entities import TaxCategory, ThirdPartyDraft, ThirdPartyPatch, ThirdPartyType
from contave.domain.errors import DomainError
from contave.domain.third_party import ThirdPartyService

TYPES = [t.value for t in ThirdPartyType]
CATEGORIES = [c.value for c in TaxCategory]


@click.group()
def third_party_group():
    """Manage customers, suppliers and other third parties."""
    pass


@third_party_group.command("create")
@click.argument("rif", metavar="RIF")
@click.argument("legal_name", metavar="LEGAL_NAME")
@click.option("--type", "tp_type", type=click.Choice(TYPES, case_sensitive=False), required=True)
@click.option("--commercial-name")
@click.option("--address", "fiscal_address")
@click.option("--phone")
@click.option("--email")
@click.option("--contact")
@click.option("--tax-category", type=click.Choice(CATEGORIES, case_sensitive=False), default="ORDINARY")
@click.option("--withholding-agent", is_flag=True, help="Third party withholds IVA")
@company_option
@click.pass_context
def create_third_party(
    ctx,
    rif: str,
    legal_name: str,
    tp_type: str,
    commercial_name: str | None,
    fiscal_address: str | None,
    phone: str | None,
    email: str | None,
    contact: str | None,
    tax_category: str,
    withholding_agent: bool,
    company_id: int | None,
):
    """Register a third party.

    Examples:
        contave third-party create J-30000000-1 "Proveedora C.A." --type SUPPLIER
    """
    db = ctx.obj["db"]
    service = ThirdPartyService(db)
    company_id = resolve_company_or_exit(ctx, company_id)

    draft = ThirdPartyDraft(
        company_id=company_id,
        third_party_type=ThirdPartyType(tp_type.upper()),
        rif=rif,
        legal_name=legal_name,
        commercial_name=commercial_name,
        fiscal_address=fiscal_address,
        phone=phone,
        email=email,
        contact_person=contact,
        tax_category=TaxCategory(tax_category.upper()),
        is_withholding_agent=withholding_agent,
    )
    try:
        third_party_id = service.create_third_party(current_caller(ctx), draft)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Created third party '{legal_name}' (ID: {third_party_id})")


@third_party_group.command("list")
@click.option("--type", "tp_type", type=click.Choice(TYPES, case_sensitive=False))
@click.option("--search", help="Match legal name, RIF or commercial name")
@click.option("--all", "show_all", is_flag=True, help="Include deactivated third parties")
@company_option
@click.pass_context
def list_third_parties(ctx, tp_type: str | None, search: str | None, show_all: bool, company_id: int | None):
    """List third parties ordered by legal name."""
    db = ctx.obj["db"]
    service = ThirdPartyService(db)
    company_id = resolve_company_or_exit(ctx, company_id)

    third_parties = service.list_third_parties(
        company_id,
        third_party_type=ThirdPartyType(tp_type.upper()) if tp_type else None,
        active_only=not show_all,
        search=search,
    )
    if not third_parties:
        click.echo("No third parties found.")
        return

    click.echo("\nThird parties:")
    click.echo("-" * 70)
    for tp in third_parties:
        click.echo(f"ID: {tp.id:3d} | {tp.rif:14s} | {tp.third_party_type.value:8s} | {tp.legal_name}")


@third_party_group.command("update")
@click.argument("third_party_id", type=int, metavar="ID")
@click.option("--legal-name")
@click.option("--commercial-name")
@click.option("--address", "fiscal_address")
@click.option("--phone")
@click.option("--email")
@click.option("--contact")
@click.option("--tax-category", type=click.Choice(CATEGORIES, case_sensitive=False))
@click.pass_context
def update_third_party(
    ctx,
    third_party_id: int,
    legal_name: str | None,
    commercial_name: str | None,
    fiscal_address: str | None,
    phone: str | None,
    email: str | None,
    contact: str | None,
    tax_category: str | None,
):
    """Update a third party. The RIF cannot be changed."""
    db = ctx.obj["db"]
    service = ThirdPartyService(db)

    patch = ThirdPartyPatch(
        legal_name=legal_name,
        commercial_name=commercial_name,
        fiscal_address=fiscal_address,
        phone=phone,
        email=email,
        contact_person=contact,
        tax_category=TaxCategory(tax_category.upper()) if tax_category else None,
    )
    if not patch.changes():
        click.echo("Nothing to update.")
        return

    try:
        service.update_third_party(current_caller(ctx), third_party_id, patch)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Updated third party {third_party_id}")


@third_party_group.command("deactivate")
@click.argument("third_party_id", type=int, metavar="ID")
@click.pass_context
def deactivate_third_party(ctx, third_party_id: int):
    """Deactivate a third party."""
    db = ctx.obj["db"]
    service = ThirdPartyService(db)

    try:
        service.deactivate_third_party(current_caller(ctx), third_party_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Deactivated third party {third_party_id}")


def register_commands(cli):
    """Register third party commands with main CLI."""
    cli.add_command(third_party_group, name="third-party")
