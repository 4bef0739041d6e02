"""CLI error handling helpers."""

import click

from contave.domain.errors import DomainError, UnbalancedEntryError


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    if isinstance(error, UnbalancedEntryError):
        click.echo(f"Difference: {error.total_debit - error.total_credit}", err=True)
    ctx.exit(1)
