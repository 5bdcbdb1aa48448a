"""Consistency checks and repairs for operators."""

import click

from shelby.cli.error_handling import handle_domain_error
from shelby.cli.options import build_pagination, echo_page, pagination_options
from shelby.domain.errors import ShelbyError
from shelby.domain.ledger import LedgerService
from shelby.domain.listing import ListingService


@click.command("audit")
@click.pass_context
def audit(ctx):
    """Check that documents, files and balances agree.

    Exits with status 1 when an inconsistency is found. Nothing is repaired.
    """
    report = ctx.obj["coordinator"].audit()
    mismatches = LedgerService(ctx.obj["db"]).verify_balances()

    for document_id in report.missing_files:
        click.echo(f"Document {document_id}: file is missing")
    for document_id in report.reference_mismatches:
        click.echo(f"Document {document_id}: reference count does not match its entries")
    for storage_key in report.orphan_files:
        click.echo(f"File {storage_key}: no document refers to it (run 'shelby sweep')")
    for mismatch in mismatches:
        click.echo(
            f"Account {mismatch.account_id}: balance {mismatch.cached} "
            f"but entries sum to {mismatch.computed}"
        )

    if report.is_consistent and not mismatches:
        click.echo("No inconsistencies found.")
    else:
        ctx.exit(1)


@click.command("sweep")
@click.option(
    "--grace",
    type=float,
    help="Keep unreferenced files younger than this many seconds (default from settings)",
)
@click.pass_context
def sweep(ctx, grace: float | None):
    """Remove files no document refers to."""
    if grace is None:
        grace = ctx.obj["settings"].orphan_grace_seconds
    try:
        removed = ctx.obj["coordinator"].sweep(grace)
    except ShelbyError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Removed {len(removed)} orphaned file{'s' if len(removed) != 1 else ''}")


@click.command("rebuild-balances")
@click.pass_context
def rebuild_balances(ctx):
    """Recompute every cached account balance from its entries."""
    try:
        corrections = LedgerService(ctx.obj["db"]).rebuild_balances()
    except ShelbyError as e:
        handle_domain_error(ctx, e)
    for correction in corrections:
        click.echo(
            f"Account {correction.account_id}: {correction.cached} -> {correction.computed}"
        )
    click.echo(f"Corrected {len(corrections)} account balance(s)")


def _filter_value(value: str):
    if value.lstrip("-").isdigit():
        return int(value)
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    return value


@click.command("list")
@click.argument("kind", type=click.Choice(ListingService.kinds()))
@click.option(
    "--filter",
    "filters",
    multiple=True,
    metavar="COLUMN=VALUE",
    help="Equality filter, may be repeated",
)
@pagination_options
@click.pass_context
def list_any(ctx, kind, filters, offset, limit, sort_column, desc):
    """List rows of any kind of record.

    Examples:
        shelby list entries --filter account_id=3 --sort date --desc
    """
    parsed = {}
    for item in filters:
        column, sep, value = item.partition("=")
        if not sep:
            click.echo(f"Error: Filter '{item}' must look like COLUMN=VALUE", err=True)
            ctx.exit(1)
        parsed[column] = _filter_value(value)

    pagination = build_pagination(ctx, offset, limit, sort_column, desc)
    try:
        page = ListingService(ctx.obj["db"]).list(kind, parsed, pagination)
    except ShelbyError as e:
        handle_domain_error(ctx, e)
    echo_page(page, repr, f"No {kind.replace('_', ' ')} found.")


def register_commands(cli):
    """Register maintenance commands with main CLI."""
    cli.add_command(audit)
    cli.add_command(sweep)
    cli.add_command(rebuild_balances)
    cli.add_command(list_any)
