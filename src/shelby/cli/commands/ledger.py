"""Ledger commands: posting, reversing and reporting."""

import mimetypes
from pathlib import Path

import click

from shelby.cli.error_handling import handle_domain_error
from shelby.cli.options import (
    PERIODS,
    build_pagination,
    echo_page,
    pagination_options,
    resolve_cli_date_range,
)
from shelby.domain.errors import ShelbyError
from shelby.domain.ledger import LedgerService
from shelby.utils.date_parser import parse_date


def _ledger(ctx) -> LedgerService:
    return LedgerService(ctx.obj["db"], ctx.obj["coordinator"])


def _format_amount(amount) -> str:
    return f"{amount:,.2f}"


@click.command("post")
@click.argument("account_id", type=int)
@click.argument("amount")
@click.argument("description", default="")
@click.option("--date", "entry_date", help="Booking date (YYYY-MM-DD, 'today', 'yesterday', ...)")
@click.option("--document", "document_id", type=int, help="ID of an already uploaded document")
@click.option(
    "--attach",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Upload this file as evidence and reference it",
)
@click.option("--user", "actor", type=int, help="ID of the user posting the entry")
@click.pass_context
def post_entry(ctx, account_id, amount, description, entry_date, document_id, attach, actor):
    """Post an entry to an account.

    AMOUNT is signed: negative amounts reduce the balance.

    Examples:
        shelby post 3 500.00 "Membership fees 2026"
        shelby post 3 -- -120.00 "Room rent" --attach invoice.pdf
    """
    if document_id is not None and attach is not None:
        click.echo("Error: --document and --attach cannot be combined.", err=True)
        ctx.exit(1)

    service = _ledger(ctx)
    try:
        booked = parse_date(entry_date) if entry_date else None
        if attach is not None:
            mime_type, _ = mimetypes.guess_type(attach.name)
            entry = service.post_with_document(
                account_id,
                amount,
                description,
                attach.read_bytes(),
                attach.name,
                mime_type,
                date=booked,
                actor=actor,
            )
            click.echo(f"Posted entry {entry.id} with document {entry.document_id}")
        else:
            entry_id = service.post(
                account_id,
                amount,
                description,
                date=booked,
                document_id=document_id,
                actor=actor,
            )
            click.echo(f"Posted entry {entry_id}")
        click.echo(f"New balance: {_format_amount(service.balance(account_id))}")
    except ShelbyError as e:
        handle_domain_error(ctx, e)


@click.command("reverse")
@click.argument("entry_id", type=int)
@click.option("--date", "entry_date", help="Booking date of the reversal")
@click.option("--description", help="Text of the reversing entry")
@click.option("--user", "actor", type=int, help="ID of the user reversing the entry")
@click.pass_context
def reverse_entry(ctx, entry_id, entry_date, description, actor):
    """Reverse an entry by posting its negation."""
    service = _ledger(ctx)
    try:
        booked = parse_date(entry_date) if entry_date else None
        reversal_id = service.reverse(entry_id, date=booked, description=description, actor=actor)
        click.echo(f"Reversed entry {entry_id} with entry {reversal_id}")
    except ShelbyError as e:
        handle_domain_error(ctx, e)


@click.command("balance")
@click.option("--account", "account_id", type=int, help="Account ID")
@click.option("--category", "category_id", type=int, help="Category ID")
@click.option("--cost-center", "cost_center_id", type=int, help="Cost center ID")
@click.pass_context
def show_balance(ctx, account_id, category_id, cost_center_id):
    """Show the balance of an account, a category or a cost center.

    --category together with --cost-center restricts the category total to
    accounts of that cost center.
    """
    service = _ledger(ctx)
    try:
        if account_id is not None:
            total = service.balance(account_id)
        elif category_id is not None:
            total = service.category_total(category_id, cost_center_id)
        elif cost_center_id is not None:
            total = service.cost_center_total(cost_center_id)
        else:
            click.echo("Error: Give --account, --category or --cost-center.", err=True)
            ctx.exit(1)
    except ShelbyError as e:
        handle_domain_error(ctx, e)
    click.echo(_format_amount(total))


@click.command("summary")
@click.option("--cost-center", "cost_center_id", type=int, help="Only this cost center")
@click.pass_context
def summary(ctx, cost_center_id):
    """Show balances grouped by cost center and category."""
    rows = _ledger(ctx).account_summary(cost_center_id)
    if not rows:
        click.echo("No accounts found.")
        return

    current_cost_center = None
    current_category = None
    overall = 0
    for row in rows:
        if row.cost_center != current_cost_center:
            if current_cost_center is not None:
                click.echo()
            click.echo(row.cost_center)
            current_cost_center = row.cost_center
            current_category = None
        if row.category != current_category:
            click.echo(f"    {row.category}")
            current_category = row.category
        click.echo(f"        {row.account:<42} {_format_amount(row.balance):>16}")
        overall += row.balance

    click.echo("-" * 70)
    click.echo(f"{'Total':<50} {_format_amount(overall):>16}")


@click.command("entries")
@click.option("--account", "account_id", type=int, help="Only entries of this account")
@click.option("--document", "document_id", type=int, help="Only entries referencing this document")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last month')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@click.option("--period", type=click.Choice(PERIODS), help="Named period instead of dates")
@pagination_options
@click.pass_context
def list_entries(
    ctx, account_id, document_id, start_date, end_date, period, offset, limit, sort_column, desc
):
    """List ledger entries."""
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period=period
    )
    pagination = build_pagination(ctx, offset, limit, sort_column, desc)
    filters = {}
    if account_id is not None:
        filters["account_id"] = account_id
    if document_id is not None:
        filters["document_id"] = document_id

    try:
        page = _ledger(ctx).list_entries(filters, pagination, start, end)
    except ShelbyError as e:
        handle_domain_error(ctx, e)

    def render(entry) -> str:
        marks = ""
        if entry.reverses_id is not None:
            marks = f" (reverses {entry.reverses_id})"
        elif entry.reversed_by_id is not None:
            marks = f" (reversed by {entry.reversed_by_id})"
        return (
            f"ID: {entry.id:4d} | {entry.date} | account {entry.account_id:3d} | "
            f"{_format_amount(entry.amount):>12} | {entry.description}{marks}"
        )

    echo_page(page, render, "No entries found.")


def register_commands(cli):
    """Register ledger commands with main CLI."""
    cli.add_command(post_entry)
    cli.add_command(reverse_entry)
    cli.add_command(show_balance)
    cli.add_command(summary)
    cli.add_command(list_entries)
