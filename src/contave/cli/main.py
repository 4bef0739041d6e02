"""Main CLI entry point."""

from dataclasses import replace

import click

from contave.config import load_settings
from contave.database.factories import create_database
from contave.domain.auth import AuthService
from contave.logging_config import configure_logging

# Import and register all commands at module level
from contave.cli.commands import (
    account,
    auth,
    company,
    journal,
    period,
    third_party,
    user,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides CONTAVE_DB_PATH environment variable)",
    envvar="CONTAVE_DB_PATH",
)
@click.option(
    "--token",
    help="Session token from 'contave login' (or CONTAVE_TOKEN environment variable)",
    envvar="CONTAVE_TOKEN",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Logging level (overrides CONTAVE_LOG_LEVEL)",
)
@click.pass_context
def cli(ctx, db_path: str | None, token: str | None, log_level: str | None):
    """Contave - multi-company bookkeeping.

    Keep the books of several companies: chart of accounts, third parties,
    monthly periods and journal entries with approval, annulment and
    reversal.
    """
    ctx.ensure_object(dict)

    settings = load_settings()
    if db_path:
        # An explicit path wins over any configured URL
        settings = replace(settings, database_path=db_path, database_url=None)
    if log_level:
        settings = replace(settings, log_level=log_level)
    configure_logging(settings.log_level)
    ctx.obj["settings"] = settings

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_database(settings=settings)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.obj["caller"] = AuthService(db, settings).verify_token(token)
        ctx.call_on_close(db.disconnect)
        if token and ctx.obj["caller"] is None:
            click.echo("Warning: session token is invalid or expired, run 'contave login'.", err=True)


# Register all commands
auth.register_commands(cli)
company.register_commands(cli)
account.register_commands(cli)
third_party.register_commands(cli)
period.register_commands(cli)
journal.register_commands(cli)
user.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
