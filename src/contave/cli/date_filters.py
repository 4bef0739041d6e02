"""CLI helpers for date range resolution."""

from datetime import date

import click

from contave.utils.date_parser import get_date_range, parse_date


def _fail(ctx: click.Context, message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    ctx.exit(1)


def resolve_cli_date_range(
    ctx: click.Context,
    *,
    date_from: str | None,
    date_to: str | None,
    period_flags: dict[str, bool],
) -> tuple[date | None, date | None]:
    """Turn ``--from``/``--to`` or one of the period flags into a date range.

    Either end may be None when only one bound was given.
    """
    chosen = [name for name, is_set in period_flags.items() if is_set]

    if len(chosen) > 1:
        _fail(ctx, "Only one of --this-month, --this-year, --last-month, --last-year can be used.")
    if chosen and (date_from or date_to):
        _fail(ctx, "Period flags (--this-month, --this-year, etc.) cannot be combined with --from or --to.")
    if chosen:
        return get_date_range(chosen[0])

    bounds: dict[str, date | None] = {"start": None, "end": None}
    for key, raw in (("start", date_from), ("end", date_to)):
        if not raw:
            continue
        try:
            bounds[key] = parse_date(raw)
        except ValueError as e:
            _fail(ctx, f"Invalid {key} date: {e}")

    start, end = bounds["start"], bounds["end"]
    if start and end and start > end:
        _fail(ctx, f"--from ({start}) is after --to ({end})")
    return start, end
