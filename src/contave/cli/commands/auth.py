"""Login and administrator bootstrap commands."""

import click

from contave.cli.error_handling import handle_domain_error
from contave.domain.auth import AuthService
from contave.domain.errors import DomainError


@click.command("setup-admin")
@click.option("--username", required=True, help="Administrator username")
@click.option("--email", required=True, help="Administrator email")
@click.password_option("--password", help="Administrator password")
@click.option("--first-name", default="Admin", show_default=True)
@click.option("--last-name", default="")
@click.pass_context
def setup_admin(ctx, username: str, email: str, password: str, first_name: str, last_name: str):
    """Create the first administrator of a new database.

    Prints a session token that can be used to create the first company.
    Fails once any user exists.

    Examples:
        contave setup-admin --username admin --email admin@example.com
    """
    db = ctx.obj["db"]
    service = AuthService(db, ctx.obj["settings"])

    try:
        caller = service.bootstrap_admin(username, email, password, first_name, last_name)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Created administrator '{username}' (ID: {caller.user_id})", err=True)
    click.echo(service.issue_token(caller))


@click.command("login")
@click.option("--username", required=True, help="Username or email")
@click.option("--password", prompt=True, hide_input=True, help="Password")
@click.pass_context
def login(ctx, username: str, password: str):
    """Log in and print a session token.

    Export the token to use it in later commands:

        export CONTAVE_TOKEN=$(contave login --username admin)
    """
    db = ctx.obj["db"]
    service = AuthService(db, ctx.obj["settings"])

    try:
        caller = service.authenticate(username, password)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Logged in as '{caller.username}' (company {caller.company_id})", err=True)
    click.echo(service.issue_token(caller))


def register_commands(cli):
    """Register authentication commands with main CLI."""
    cli.add_command(setup_admin)
    cli.add_command(login)
