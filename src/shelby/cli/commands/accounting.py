"""Account, category and cost center commands."""

import click

from shelby.cli.error_handling import handle_domain_error
from shelby.cli.options import build_pagination, echo_page, pagination_options
from shelby.domain.accounting import AccountService, CategoryService, CostCenterService
from shelby.domain.errors import ShelbyError


def _account_service(ctx: click.Context) -> AccountService:
    try:
        return AccountService(ctx.obj["db"], ctx.obj["settings"].account_delete_guard)
    except ShelbyError as e:
        handle_domain_error(ctx, e)


@click.group()
def account_group():
    """Manage accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option("--category", "category_id", type=int, required=True, help="Category ID")
@click.option("--cost-center", "cost_center_id", type=int, required=True, help="Cost center ID")
@click.option("--code", type=int, help="Account number")
@click.pass_context
def create_account(ctx, name: str, category_id: int, cost_center_id: int, code: int | None):
    """Create a new account.

    Examples:
        shelby account create "Membership fees" --category 1 --cost-center 1
        shelby account create "Bank" --category 2 --cost-center 1 --code 1200
    """
    service = _account_service(ctx)
    try:
        account_id = service.create_account(name, category_id, cost_center_id, code=code)
        click.echo(f"Created account '{name}' (ID: {account_id})")
    except ShelbyError as e:
        handle_domain_error(ctx, e)


@account_group.command("update")
@click.argument("account_id", type=int)
@click.option("--name", help="New account name")
@click.option("--code", type=int, help="New account number")
@click.option("--category", "category_id", type=int, help="Move to this category")
@click.option("--cost-center", "cost_center_id", type=int, help="Move to this cost center")
@click.pass_context
def update_account(ctx, account_id: int, name, code, category_id, cost_center_id):
    """Rename an account or move it to another category or cost center."""
    service = _account_service(ctx)
    try:
        account = service.update_account(
            account_id,
            name=name,
            code=code,
            category_id=category_id,
            cost_center_id=cost_center_id,
        )
        click.echo(f"Updated account '{account.name}'")
    except ShelbyError as e:
        handle_domain_error(ctx, e)


@account_group.command("delete")
@click.argument("account_id", type=int)
@click.pass_context
def delete_account(ctx, account_id: int):
    """Delete an account.

    The account can only be deleted if no entry was ever posted to it.
    Set SHELBY_ACCOUNT_DELETE_GUARD=zero_balance to also require a zero balance.
    """
    try:
        _account_service(ctx).delete_account(account_id)
        click.echo(f"Deleted account {account_id}")
    except ShelbyError as e:
        handle_domain_error(ctx, e)


@account_group.command("list")
@click.option("--category", "category_id", type=int, help="Only accounts of this category")
@click.option("--cost-center", "cost_center_id", type=int, help="Only accounts of this cost center")
@pagination_options
@click.pass_context
def list_accounts(ctx, category_id, cost_center_id, offset, limit, sort_column, desc):
    """List accounts."""
    pagination = build_pagination(ctx, offset, limit, sort_column, desc)
    filters = {}
    if category_id is not None:
        filters["category_id"] = category_id
    if cost_center_id is not None:
        filters["cost_center_id"] = cost_center_id
    try:
        page = _account_service(ctx).list_accounts(filters, pagination)
    except ShelbyError as e:
        handle_domain_error(ctx, e)
    echo_page(
        page,
        lambda a: f"ID: {a.id:3d} | {a.name:30s} | {a.balance:>12,.2f}",
        "No accounts found.",
    )


@click.group()
def category_group():
    """Manage account categories."""
    pass


@category_group.command("create")
@click.argument("name")
@click.pass_context
def create_category(ctx, name: str):
    """Create a category."""
    try:
        category_id = CategoryService(ctx.obj["db"]).create_category(name)
        click.echo(f"Created category '{name}' (ID: {category_id})")
    except ShelbyError as e:
        handle_domain_error(ctx, e)


@category_group.command("rename")
@click.argument("category_id", type=int)
@click.argument("name")
@click.pass_context
def rename_category(ctx, category_id: int, name: str):
    """Rename a category."""
    try:
        CategoryService(ctx.obj["db"]).rename_category(category_id, name)
        click.echo(f"Renamed category {category_id} to '{name}'")
    except ShelbyError as e:
        handle_domain_error(ctx, e)


@category_group.command("delete")
@click.argument("category_id", type=int)
@click.pass_context
def delete_category(ctx, category_id: int):
    """Delete a category no account belongs to."""
    try:
        CategoryService(ctx.obj["db"]).delete_category(category_id)
        click.echo(f"Deleted category {category_id}")
    except ShelbyError as e:
        handle_domain_error(ctx, e)


@category_group.command("list")
@pagination_options
@click.pass_context
def list_categories(ctx, offset, limit, sort_column, desc):
    """List categories."""
    pagination = build_pagination(ctx, offset, limit, sort_column, desc)
    try:
        page = CategoryService(ctx.obj["db"]).list_categories(pagination=pagination)
    except ShelbyError as e:
        handle_domain_error(ctx, e)
    echo_page(page, lambda c: f"ID: {c.id:3d} | {c.name}", "No categories found.")


@click.group()
def cost_center_group():
    """Manage cost centers."""
    pass


@cost_center_group.command("create")
@click.argument("name")
@click.pass_context
def create_cost_center(ctx, name: str):
    """Create a cost center."""
    try:
        cost_center_id = CostCenterService(ctx.obj["db"]).create_cost_center(name)
        click.echo(f"Created cost center '{name}' (ID: {cost_center_id})")
    except ShelbyError as e:
        handle_domain_error(ctx, e)


@cost_center_group.command("rename")
@click.argument("cost_center_id", type=int)
@click.argument("name")
@click.pass_context
def rename_cost_center(ctx, cost_center_id: int, name: str):
    """Rename a cost center."""
    try:
        CostCenterService(ctx.obj["db"]).rename_cost_center(cost_center_id, name)
        click.echo(f"Renamed cost center {cost_center_id} to '{name}'")
    except ShelbyError as e:
        handle_domain_error(ctx, e)


@cost_center_group.command("delete")
@click.argument("cost_center_id", type=int)
@click.pass_context
def delete_cost_center(ctx, cost_center_id: int):
    """Delete a cost center no account belongs to."""
    try:
        CostCenterService(ctx.obj["db"]).delete_cost_center(cost_center_id)
        click.echo(f"Deleted cost center {cost_center_id}")
    except ShelbyError as e:
        handle_domain_error(ctx, e)


@cost_center_group.command("list")
@pagination_options
@click.pass_context
def list_cost_centers(ctx, offset, limit, sort_column, desc):
    """List cost centers."""
    pagination = build_pagination(ctx, offset, limit, sort_column, desc)
    try:
        page = CostCenterService(ctx.obj["db"]).list_cost_centers(pagination=pagination)
    except ShelbyError as e:
        handle_domain_error(ctx, e)
    echo_page(page, lambda c: f"ID: {c.id:3d} | {c.name}", "No cost centers found.")


def register_commands(cli):
    """Register accounting commands with main CLI."""
    cli.add_command(account_group, name="account")
    cli.add_command(category_group, name="category")
    cli.add_command(cost_center_group, name="cost-center")
