"""User and role administration commands."""

import click

from contave.cli.error_handling import handle_domain_error
from contave.cli.session import current_caller, require_login
from contave.domain.entities import UserPatch
from contave.domain.errors import DomainError
from contave.domain.user import UserService


@click.group()
def user_group():
    """Manage users, roles and company access."""
    pass


def _service(ctx) -> UserService:
    return UserService(ctx.obj["db"], ctx.obj["settings"])


@user_group.command("list")
@click.option("--active", "active_only", is_flag=True, help="Hide deactivated users")
@click.pass_context
def list_users(ctx, active_only: bool):
    """List users ordered by username."""
    require_login(ctx)
    try:
        users = _service(ctx).list_users(current_caller(ctx), active_only=active_only)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not users:
        click.echo("No users found.")
        return

    click.echo("\nUsers:")
    click.echo("-" * 70)
    for user in users:
        status = "blocked" if user.is_blocked else ("active" if user.is_active else "inactive")
        click.echo(f"ID: {user.id:3d} | {user.username:15s} | {status:8s} | {user.email}")


@user_group.command("create")
@click.argument("username")
@click.option("--email", required=True)
@click.password_option("--password", help="Initial password")
@click.option("--first-name", required=True)
@click.option("--last-name", required=True)
@click.option("--company-id", type=int, help="Company the user works in")
@click.option("--role", "role_name", help="Role for that company (e.g. ADMIN)")
@click.pass_context
def create_user(
    ctx,
    username: str,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    company_id: int | None,
    role_name: str | None,
):
    """Create a user.

    Examples:
        contave user create maria --email maria@example.com --first-name María \\
            --last-name Pérez --company-id 1 --role CONTADOR
    """
    require_login(ctx)
    try:
        user_id = _service(ctx).create_user(
            current_caller(ctx),
            username,
            email,
            password,
            first_name,
            last_name,
            company_id=company_id,
            role_name=role_name,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Created user '{username}' (ID: {user_id})")


@user_group.command("update")
@click.argument("user_id", type=int, metavar="ID")
@click.option("--email")
@click.option("--first-name")
@click.option("--last-name")
@click.option("--active/--inactive", "is_active", default=None)
@click.option("--blocked/--unblocked", "is_blocked", default=None)
@click.option("--password", help="New password")
@click.pass_context
def update_user(
    ctx,
    user_id: int,
    email: str | None,
    first_name: str | None,
    last_name: str | None,
    is_active: bool | None,
    is_blocked: bool | None,
    password: str | None,
):
    """Update a user. The username cannot be changed."""
    require_login(ctx)
    patch = UserPatch(
        email=email,
        first_name=first_name,
        last_name=last_name,
        is_active=is_active,
        is_blocked=is_blocked,
    )
    if not patch.changes() and not password:
        click.echo("Nothing to update.")
        return

    try:
        _service(ctx).update_user(current_caller(ctx), user_id, patch, password=password)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Updated user {user_id}")


@user_group.command("deactivate")
@click.argument("user_id", type=int, metavar="ID")
@click.pass_context
def deactivate_user(ctx, user_id: int):
    """Deactivate a user so they can no longer log in."""
    require_login(ctx)
    try:
        _service(ctx).deactivate_user(current_caller(ctx), user_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Deactivated user {user_id}")


@user_group.command("grant")
@click.argument("user_id", type=int, metavar="ID")
@click.option("--company-id", type=int, required=True)
@click.option("--role", "role_name", required=True)
@click.option("--default", "is_default", is_flag=True, help="Make this the user's login company")
@click.pass_context
def grant_company(ctx, user_id: int, company_id: int, role_name: str, is_default: bool):
    """Give a user access to a company through a role."""
    require_login(ctx)
    try:
        _service(ctx).grant_company(current_caller(ctx), user_id, company_id, role_name, is_default=is_default)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"User {user_id} now works in company {company_id} as {role_name.upper()}")


@user_group.command("create-role")
@click.argument("name")
@click.option(
    "--permission",
    "permissions",
    multiple=True,
    required=True,
    help="Permission as module:action (repeatable, e.g. journal:create)",
)
@click.option("--description")
@click.pass_context
def create_role(ctx, name: str, permissions: tuple[str, ...], description: str | None):
    """Create a role.

    Examples:
        contave user create-role CONTADOR --permission journal:create --permission journal:approve
    """
    require_login(ctx)
    try:
        role_id = _service(ctx).create_role(current_caller(ctx), name, permissions, description)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Created role '{name.upper()}' (ID: {role_id})")


def register_commands(cli):
    """Register user commands with main CLI."""
    cli.add_command(user_group, name="user")
