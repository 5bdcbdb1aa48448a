"""Person, group and membership commands."""

import click

from shelby.cli.error_handling import handle_domain_error
from shelby.cli.options import build_pagination, echo_page, pagination_options
from shelby.domain.errors import ShelbyError
from shelby.domain.membership import MembershipService
from shelby.domain.person import GroupService, PersonService
from shelby.utils.date_parser import parse_date


@click.group()
def person_group():
    """Manage persons."""
    pass


@person_group.command("create")
@click.argument("name")
@click.option("--address", default="", help="Postal address")
@click.option("--email", help="Email address")
@click.option("--birthday", help="Birthday (YYYY-MM-DD or DD.MM.YYYY)")
@click.option("--comment", help="Free text comment")
@click.pass_context
def create_person(ctx, name: str, address: str, email: str | None, birthday: str | None, comment: str | None):
    """Create a person.

    Examples:
        shelby person create "Alice Example" --email alice@example.org
        shelby person create "Bob" --birthday 24.12.1990
    """
    service = PersonService(ctx.obj["db"])
    try:
        born = parse_date(birthday) if birthday else None
        person_id = service.create_person(
            name=name, address=address, email=email, birthday=born, comment=comment
        )
        click.echo(f"Created person '{name}' (ID: {person_id})")
    except ShelbyError as e:
        handle_domain_error(ctx, e)


@person_group.command("show")
@click.argument("person_id", type=int)
@click.pass_context
def show_person(ctx, person_id: int):
    """Show a person and their groups."""
    db = ctx.obj["db"]
    person = PersonService(db).get_person(person_id)
    if person is None:
        click.echo(f"Error: Person {person_id} not found", err=True)
        ctx.exit(1)

    click.echo(f"ID: {person.id}")
    click.echo(f"Name: {person.name}")
    if person.address:
        click.echo(f"Address: {person.address}")
    if person.email:
        click.echo(f"Email: {person.email}")
    if person.birthday:
        click.echo(f"Birthday: {person.birthday}")
    if person.comment:
        click.echo(f"Comment: {person.comment}")

    memberships = MembershipService(db).list_memberships(person_id=person_id)
    for membership in memberships:
        click.echo(f"Member of: {membership.group_description} (group {membership.group_id})")


@person_group.command("update")
@click.argument("person_id", type=int)
@click.option("--name", help="New name")
@click.option("--address", help="New postal address")
@click.option("--email", help="New email address")
@click.option("--birthday", help="New birthday")
@click.option("--comment", help="New comment")
@click.pass_context
def update_person(ctx, person_id: int, name, address, email, birthday, comment):
    """Update fields of a person. Omitted fields are kept."""
    service = PersonService(ctx.obj["db"])
    try:
        born = parse_date(birthday) if birthday else None
        person = service.update_person(
            person_id, name=name, address=address, email=email, birthday=born, comment=comment
        )
        click.echo(f"Updated person '{person.name}'")
    except ShelbyError as e:
        handle_domain_error(ctx, e)


@person_group.command("delete")
@click.argument("person_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_person(ctx, person_id: int, yes: bool):
    """Delete a person nothing refers to any more."""
    service = PersonService(ctx.obj["db"])
    if not yes and not click.confirm(f"Are you sure you want to delete person {person_id}?"):
        click.echo("Deletion cancelled.")
        return
    try:
        service.delete_person(person_id)
        click.echo(f"Deleted person {person_id}")
    except ShelbyError as e:
        handle_domain_error(ctx, e)


@person_group.command("list")
@click.option("--name", help="Only persons with exactly this name")
@pagination_options
@click.pass_context
def list_persons(ctx, name, offset, limit, sort_column, desc):
    """List persons."""
    pagination = build_pagination(ctx, offset, limit, sort_column, desc)
    filters = {"name": name} if name else None
    try:
        page = PersonService(ctx.obj["db"]).list_persons(filters, pagination)
    except ShelbyError as e:
        handle_domain_error(ctx, e)
    echo_page(
        page,
        lambda p: f"ID: {p.id:4d} | {p.name:30s} | {p.email or ''}",
        "No persons found.",
    )


@click.group()
def group_group():
    """Manage groups."""
    pass


@group_group.command("create")
@click.argument("description")
@click.pass_context
def create_group(ctx, description: str):
    """Create a group."""
    try:
        group_id = GroupService(ctx.obj["db"]).create_group(description)
        click.echo(f"Created group '{description}' (ID: {group_id})")
    except ShelbyError as e:
        handle_domain_error(ctx, e)


@group_group.command("rename")
@click.argument("group_id", type=int)
@click.argument("description")
@click.pass_context
def rename_group(ctx, group_id: int, description: str):
    """Change the description of a group."""
    try:
        GroupService(ctx.obj["db"]).rename_group(group_id, description)
        click.echo(f"Renamed group {group_id} to '{description}'")
    except ShelbyError as e:
        handle_domain_error(ctx, e)


@group_group.command("delete")
@click.argument("group_id", type=int)
@click.pass_context
def delete_group(ctx, group_id: int):
    """Delete a group without members."""
    try:
        GroupService(ctx.obj["db"]).delete_group(group_id)
        click.echo(f"Deleted group {group_id}")
    except ShelbyError as e:
        handle_domain_error(ctx, e)


@group_group.command("list")
@pagination_options
@click.pass_context
def list_groups(ctx, offset, limit, sort_column, desc):
    """List groups."""
    pagination = build_pagination(ctx, offset, limit, sort_column, desc)
    try:
        page = GroupService(ctx.obj["db"]).list_groups(pagination=pagination)
    except ShelbyError as e:
        handle_domain_error(ctx, e)
    echo_page(page, lambda g: f"ID: {g.id:4d} | {g.description}", "No groups found.")


@click.group()
def member_group():
    """Manage group memberships."""
    pass


@member_group.command("add")
@click.argument("person_id", type=int)
@click.argument("group_id", type=int)
@click.option("--comment", help="Comment on the membership")
@click.pass_context
def add_member(ctx, person_id: int, group_id: int, comment: str | None):
    """Add a person to a group.

    Examples:
        shelby member add 1 2
        shelby member add 1 2 --comment "Treasurer since 2024"
    """
    try:
        membership_id = MembershipService(ctx.obj["db"]).add(person_id, group_id, comment)
        click.echo(f"Added person {person_id} to group {group_id} (membership ID: {membership_id})")
    except ShelbyError as e:
        handle_domain_error(ctx, e)


@member_group.command("remove")
@click.argument("membership_id", type=int)
@click.pass_context
def remove_member(ctx, membership_id: int):
    """Remove a membership."""
    try:
        MembershipService(ctx.obj["db"]).remove(membership_id)
        click.echo(f"Removed membership {membership_id}")
    except ShelbyError as e:
        handle_domain_error(ctx, e)


@member_group.command("list")
@click.option("--person", "person_id", type=int, help="Only memberships of this person")
@click.option("--group", "group_id", type=int, help="Only memberships of this group")
@pagination_options
@click.pass_context
def list_members(ctx, person_id, group_id, offset, limit, sort_column, desc):
    """List memberships."""
    pagination = build_pagination(ctx, offset, limit, sort_column, desc)
    try:
        page = MembershipService(ctx.obj["db"]).list_memberships(person_id, group_id, pagination)
    except ShelbyError as e:
        handle_domain_error(ctx, e)
    echo_page(
        page,
        lambda m: f"ID: {m.id:4d} | {m.person_name:30s} | {m.group_description}",
        "No memberships found.",
    )


def register_commands(cli):
    """Register person, group and membership commands with main CLI."""
    cli.add_command(person_group, name="person")
    cli.add_command(group_group, name="group")
    cli.add_command(member_group, name="member")
