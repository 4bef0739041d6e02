"""Accounting period commands."""

import click

from contave.cli.error_handling import handle_domain_error
from contave.cli.session import company_option, current_caller, resolve_company_or_exit
from contave.domain.entities import PeriodStatus
from contave.domain.errors import DomainError
from contave.domain.period import PeriodService

STATUSES = [s.value for s in PeriodStatus]


def resolve_period_or_exit(ctx, service: PeriodService, company_id: int | None, period: str) -> int:
    """Resolve a period given as ``YYYY-MM`` or as an ID."""
    if "-" in period:
        try:
            year, month = (int(part) for part in period.split("-", 1))
        except ValueError:
            click.echo(f"Error: Invalid period '{period}', expected YYYY-MM or an ID", err=True)
            ctx.exit(1)
        company_id = resolve_company_or_exit(ctx, company_id)
        found = service.db.get_period_by_month(company_id, year, month)
        if found is None:
            click.echo(f"Error: Period {period} not found", err=True)
            ctx.exit(1)
        return found.id

    try:
        return int(period)
    except ValueError:
        click.echo(f"Error: Invalid period '{period}', expected YYYY-MM or an ID", err=True)
        ctx.exit(1)


@click.group()
def period_group():
    """Manage accounting periods."""
    pass


@period_group.command("list")
@click.option("--year", type=int)
@click.option("--status", type=click.Choice(STATUSES, case_sensitive=False))
@company_option
@click.pass_context
def list_periods(ctx, year: int | None, status: str | None, company_id: int | None):
    """List periods, newest first."""
    db = ctx.obj["db"]
    service = PeriodService(db)
    company_id = resolve_company_or_exit(ctx, company_id)

    periods = service.list_periods(
        company_id, year=year, status=PeriodStatus(status.upper()) if status else None
    )
    if not periods:
        click.echo("No periods found.")
        return

    click.echo("\nPeriods:")
    click.echo("-" * 50)
    for p in periods:
        click.echo(f"ID: {p.id:4d} | {p.year}-{p.month:02d} | {p.start_date} .. {p.end_date} | {p.status.value}")


@period_group.command("close")
@click.argument("period", metavar="PERIOD")
@click.option("--note", help="Closing note")
@company_option
@click.pass_context
def close_period(ctx, period: str, note: str | None, company_id: int | None):
    """Close a period. Approved entries in it must balance.

    PERIOD is YYYY-MM or a period ID.
    """
    db = ctx.obj["db"]
    service = PeriodService(db)
    period_id = resolve_period_or_exit(ctx, service, company_id, period)

    try:
        service.close(current_caller(ctx), period_id, note)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Closed period {period}")


@period_group.command("reopen")
@click.argument("period", metavar="PERIOD")
@click.option("--note", help="Reason for reopening")
@company_option
@click.pass_context
def reopen_period(ctx, period: str, note: str | None, company_id: int | None):
    """Reopen a closed period.

    PERIOD is YYYY-MM or a period ID. The following month must not be OPEN.
    """
    db = ctx.obj["db"]
    service = PeriodService(db)
    period_id = resolve_period_or_exit(ctx, service, company_id, period)

    try:
        service.reopen(current_caller(ctx), period_id, note)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Reopened period {period}")


@period_group.command("create-year")
@click.argument("year", type=int)
@company_option
@click.pass_context
def create_year(ctx, year: int, company_id: int | None):
    """Open the twelve monthly periods of YEAR."""
    db = ctx.obj["db"]
    service = PeriodService(db)
    company_id = resolve_company_or_exit(ctx, company_id)

    try:
        service.create_fiscal_year(current_caller(ctx), company_id, year)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Created 12 periods for {year}")


def register_commands(cli):
    """Register period commands with main CLI."""
    cli.add_command(period_group, name="period")
