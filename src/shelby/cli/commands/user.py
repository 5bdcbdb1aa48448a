"""User administration commands."""

import click

from shelby.cli.error_handling import handle_domain_error
from shelby.cli.options import build_pagination, echo_page, pagination_options
from shelby.domain.errors import ShelbyError
from shelby.domain.user import UserService


@click.group()
def user_group():
    """Manage login users."""
    pass


@user_group.command("create")
@click.argument("username")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option("--person", "person_id", type=int, help="Person the user belongs to")
@click.pass_context
def create_user(ctx, username: str, password: str, person_id: int | None):
    """Create a user."""
    try:
        user_id = UserService(ctx.obj["db"]).create_user(username, password, person_id)
        click.echo(f"Created user '{username}' (ID: {user_id})")
    except ShelbyError as e:
        handle_domain_error(ctx, e)


@user_group.command("password")
@click.argument("user_id", type=int)
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.pass_context
def set_password(ctx, user_id: int, password: str):
    """Set a new password for a user."""
    try:
        UserService(ctx.obj["db"]).set_password(user_id, password)
        click.echo(f"Changed password of user {user_id}")
    except ShelbyError as e:
        handle_domain_error(ctx, e)


@user_group.command("enable")
@click.argument("user_id", type=int)
@click.pass_context
def enable_user(ctx, user_id: int):
    """Allow a user to log in."""
    try:
        user = UserService(ctx.obj["db"]).set_active(user_id, True)
        click.echo(f"Enabled user '{user.username}'")
    except ShelbyError as e:
        handle_domain_error(ctx, e)


@user_group.command("disable")
@click.argument("user_id", type=int)
@click.pass_context
def disable_user(ctx, user_id: int):
    """Stop a user from logging in."""
    try:
        user = UserService(ctx.obj["db"]).set_active(user_id, False)
        click.echo(f"Disabled user '{user.username}'")
    except ShelbyError as e:
        handle_domain_error(ctx, e)


@user_group.command("list")
@pagination_options
@click.pass_context
def list_users(ctx, offset, limit, sort_column, desc):
    """List users."""
    pagination = build_pagination(ctx, offset, limit, sort_column, desc)
    try:
        page = UserService(ctx.obj["db"]).list_users(pagination=pagination)
    except ShelbyError as e:
        handle_domain_error(ctx, e)
    echo_page(
        page,
        lambda u: f"ID: {u.id:3d} | {u.username:20s} | {'active' if u.active else 'disabled'}",
        "No users found.",
    )


def register_commands(cli):
    """Register user commands with main CLI."""
    cli.add_command(user_group, name="user")
