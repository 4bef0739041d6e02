"""CLI helpers for the caller identity and the working company."""

from typing import Optional

import click

from contave.domain.permissions import Caller


def current_caller(ctx: click.Context) -> Optional[Caller]:
    """Return the caller decoded from ``--token``, if any."""
    return ctx.obj.get("caller")


def require_login(ctx: click.Context) -> Caller:
    """Return the caller, or exit when no valid token was given."""
    caller = current_caller(ctx)
    if caller is None:
        click.echo("Error: Authentication required. Run 'contave login' first.", err=True)
        ctx.exit(1)
    return caller


def resolve_company_or_exit(ctx: click.Context, company_id: Optional[int]) -> int:
    """Use ``--company-id`` if given, else the company in the token."""
    caller = require_login(ctx)
    if company_id is not None:
        return company_id

    if caller.company_id is None:
        click.echo("Error: No company selected. Log in or pass --company-id.", err=True)
        ctx.exit(1)
    return caller.company_id


company_option = click.option(
    "--company-id",
    type=int,
    default=None,
    help="Company to work on (defaults to the company of the logged-in user)",
)
