"""Journal entry commands."""

import click

from contave.cli.commands.period import resolve_period_or_exit
from contave.cli.date_filters import resolve_cli_date_range
from contave.cli.error_handling import handle_domain_error
from contave.cli.session import company_option, current_caller, require_login, resolve_company_or_exit
from contave.config import Settings
from contave.domain.account import AccountService
from contave.domain.entities import EntryDraft, EntryFilters, EntryStatus, EntryType, LineDraft
from contave.domain.errors import DomainError
from contave.domain.journal import JournalService
from contave.utils.account_resolver import resolve_account
from contave.utils.amount_parser import parse_amount
from contave.utils.date_parser import parse_date

TYPES = [t.value for t in EntryType]
STATUSES = [s.value for s in EntryStatus]


def parse_line_spec(spec: str) -> tuple[str, str, str, str | None]:
    """Split ``CODE:DEBIT:CREDIT[:DESCRIPTION]``."""
    parts = spec.split(":", 3)
    if len(parts) < 3:
        raise ValueError(f"Invalid line '{spec}', expected CODE:DEBIT:CREDIT[:DESCRIPTION]")
    code, debit, credit = (p.strip() for p in parts[:3])
    description = parts[3].strip() if len(parts) == 4 else None
    return code, debit, credit, description or None


def _journal(ctx) -> JournalService:
    settings: Settings = ctx.obj["settings"]
    return JournalService(ctx.obj["db"], default_currency=settings.default_currency)


@click.group()
def journal_group():
    """Post and maintain journal entries."""
    pass


@journal_group.command("create")
@click.argument("description", metavar="DESCRIPTION")
@click.option(
    "--line",
    "lines",
    multiple=True,
    required=True,
    help="CODE:DEBIT:CREDIT[:DESCRIPTION], repeat once per line",
)
@click.option("--date", "entry_date", default="today", show_default=True, help="Entry date")
@click.option("--type", "entry_type", type=click.Choice(TYPES, case_sensitive=False), default="DAILY")
@click.option("--period", help="Period as YYYY-MM or ID (defaults to the open period)")
@click.option("--reference")
@click.option("--currency")
@click.option("--rate", help="Exchange rate to the functional currency")
@company_option
@click.pass_context
def create_entry(
    ctx,
    description: str,
    lines: tuple[str, ...],
    entry_date: str,
    entry_type: str,
    period: str | None,
    reference: str | None,
    currency: str | None,
    rate: str | None,
    company_id: int | None,
):
    """Create a DRAFT journal entry.

    Examples:
        contave journal create "Venta de contado" --line 1101:1160:0 --line 4101:0:1000 --line 2105:0:160
        contave journal create "Pago" --date 2024-03-05 --line 5101:50,00:0 --line 1101:0:50,00
    """
    service = _journal(ctx)
    accounts = AccountService(ctx.obj["db"])
    company_id = resolve_company_or_exit(ctx, company_id)

    try:
        parsed_date = parse_date(entry_date)
        exchange_rate = parse_amount(rate) if rate else None
        drafts = []
        for spec in lines:
            code, debit, credit, line_description = parse_line_spec(spec)
            drafts.append(
                LineDraft(
                    account_id=resolve_account(accounts, company_id, code),
                    debit=parse_amount(debit),
                    credit=parse_amount(credit),
                    description=line_description,
                )
            )
    except ValueError as e:
        handle_domain_error(ctx, e)

    period_id = resolve_period_or_exit(ctx, service.periods, company_id, period) if period else None

    draft = EntryDraft(
        company_id=company_id,
        entry_date=parsed_date,
        description=description,
        lines=tuple(drafts),
        entry_type=EntryType(entry_type.upper()),
        period_id=period_id,
        reference=reference,
        currency=currency,
        exchange_rate=exchange_rate,
    )
    try:
        posted = service.create_entry(current_caller(ctx), draft)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Created entry {posted.entry_number} (ID: {posted.entry_id})")


@journal_group.command("list")
@click.option("--status", type=click.Choice(STATUSES, case_sensitive=False))
@click.option("--type", "entry_type", type=click.Choice(TYPES, case_sensitive=False))
@click.option("--period", help="Period as YYYY-MM or ID")
@click.option("--from", "date_from", help="Earliest entry date")
@click.option("--to", "date_to", help="Latest entry date")
@click.option("--this-month", is_flag=True)
@click.option("--this-year", is_flag=True)
@click.option("--last-month", is_flag=True)
@click.option("--last-year", is_flag=True)
@click.option("--search", help="Match number, description or reference")
@click.option("--page", type=int, default=1, show_default=True)
@click.option("--page-size", type=int, default=20, show_default=True)
@company_option
@click.pass_context
def list_entries(
    ctx,
    status: str | None,
    entry_type: str | None,
    period: str | None,
    date_from: str | None,
    date_to: str | None,
    this_month: bool,
    this_year: bool,
    last_month: bool,
    last_year: bool,
    search: str | None,
    page: int,
    page_size: int,
    company_id: int | None,
):
    """List journal entries, newest first."""
    service = _journal(ctx)
    company_id = resolve_company_or_exit(ctx, company_id)

    start, end = resolve_cli_date_range(
        ctx,
        date_from=date_from,
        date_to=date_to,
        period_flags={
            "this-month": this_month,
            "this-year": this_year,
            "last-month": last_month,
            "last-year": last_year,
        },
    )
    period_id = resolve_period_or_exit(ctx, service.periods, company_id, period) if period else None

    filters = EntryFilters(
        period_id=period_id,
        status=EntryStatus(status.upper()) if status else None,
        entry_type=EntryType(entry_type.upper()) if entry_type else None,
        date_from=start,
        date_to=end,
        search=search,
    )
    page = max(page, 1)
    page_size = max(page_size, 1)
    total = service.count_entries(company_id, filters)
    entries = service.list_entries(company_id, filters, offset=(page - 1) * page_size, limit=page_size)

    if not entries:
        click.echo("No entries found.")
        return

    click.echo(f"\nJournal entries (page {page}, {total} total):")
    click.echo("-" * 90)
    for e in entries:
        click.echo(
            f"ID: {e.id:4d} | {e.entry_number:9s} | {e.entry_date} | {e.entry_type.value:10s} | "
            f"{e.status.value:8s} | {e.total_debit:>14} | {e.description}"
        )


@journal_group.command("show")
@click.argument("entry_id", type=int)
@click.pass_context
def show_entry(ctx, entry_id: int):
    """Show an entry with its lines."""
    require_login(ctx)
    db = ctx.obj["db"]
    service = _journal(ctx)

    try:
        entry = service.get_entry(entry_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Entry {entry.entry_number} ({entry.entry_type.value}, {entry.status.value})")
    click.echo(f"Date: {entry.entry_date}  Currency: {entry.currency}  Rate: {entry.exchange_rate}")
    click.echo(f"Description: {entry.description}")
    if entry.reference:
        click.echo(f"Reference: {entry.reference}")
    if entry.annulment_reason:
        click.echo(f"Annulled: {entry.annulment_reason}")
    click.echo("-" * 80)
    for line in entry.lines:
        account = db.get_account(line.account_id)
        code = account.code if account else str(line.account_id)
        click.echo(f"{line.line_number:3d} | {code:12s} | {line.debit:>14} | {line.credit:>14} | {line.description or ''}")
    click.echo("-" * 80)
    click.echo(f"{'':3s}   {'Totals':12s} | {entry.total_debit:>14} | {entry.total_credit:>14}")


@journal_group.command("approve")
@click.argument("entry_id", type=int)
@click.pass_context
def approve_entry(ctx, entry_id: int):
    """Approve a DRAFT entry."""
    try:
        _journal(ctx).approve_entry(current_caller(ctx), entry_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Approved entry {entry_id}")


@journal_group.command("annul")
@click.argument("entry_id", type=int)
@click.option("--reason", required=True, help="Why the entry is annulled")
@click.pass_context
def annul_entry(ctx, entry_id: int, reason: str):
    """Annul an APPROVED entry."""
    try:
        _journal(ctx).annul_entry(current_caller(ctx), entry_id, reason)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Annulled entry {entry_id}")


@journal_group.command("reverse")
@click.argument("entry_id", type=int)
@click.pass_context
def reverse_entry(ctx, entry_id: int):
    """Post the reversal of an entry, dated today."""
    try:
        posted = _journal(ctx).reverse_entry(current_caller(ctx), entry_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Created reversal {posted.entry_number} (ID: {posted.entry_id})")


def register_commands(cli):
    """Register journal commands with main CLI."""
    cli.add_command(journal_group, name="journal")
