"""Shared CLI options for listing and date range commands."""

from datetime import date
from typing import Any, Callable

import click

from shelby.domain.errors import ValidationError
from shelby.utils.date_parser import get_date_range, parse_date
from shelby.utils.pagination import DEFAULT_LIMIT, Order, Page, Pagination

PERIODS = ("this-month", "last-month", "this-year", "last-year")


def pagination_options(command: Callable) -> Callable:
    """Add --offset, --limit, --sort and --desc options to a list command."""
    command = click.option("--desc", is_flag=True, help="Sort in descending order")(command)
    command = click.option("--sort", "sort_column", default="id", help="Column to sort by")(command)
    command = click.option(
        "--limit", type=int, default=DEFAULT_LIMIT, show_default=True, help="Rows per page"
    )(command)
    command = click.option(
        "--offset", type=int, default=0, show_default=True, help="Rows to skip"
    )(command)
    return command


def build_pagination(ctx, offset: int, limit: int, sort_column: str, desc: bool) -> Pagination:
    """Build a Pagination from the pagination options, exiting on bad values."""
    try:
        return Pagination(
            offset=offset,
            limit=limit,
            order=Order.DESCENDING if desc else Order.ASCENDING,
            column=sort_column,
        )
    except ValidationError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


def echo_page(page: Page, render: Callable[[Any], str], empty: str) -> None:
    """Print one page of rows followed by a hint about neighbouring pages."""
    if not page.rows:
        click.echo(empty)
        return
    for row in page:
        click.echo(render(row))

    hints = []
    if page.has_previous:
        hints.append(f"previous page: --offset {page.pagination.previous_page().offset}")
    if page.has_next:
        hints.append(f"next page: --offset {page.pagination.next_page().offset}")
    if hints:
        click.echo(f"({'; '.join(hints)})")


def resolve_cli_date_range(
    ctx,
    *,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
) -> tuple[date | None, date | None]:
    """Resolve CLI date range from a period name or explicit dates."""
    if period and (start_date or end_date):
        click.echo(
            "Error: --period cannot be combined with --start-date or --end-date.",
            err=True,
        )
        ctx.exit(1)

    if period:
        return get_date_range(period)

    start = None
    end = None
    if start_date:
        try:
            start = parse_date(start_date)
        except ValidationError as e:
            click.echo(f"Error: Invalid start date: {e}", err=True)
            ctx.exit(1)

    if end_date:
        try:
            end = parse_date(end_date)
        except ValidationError as e:
            click.echo(f"Error: Invalid end date: {e}", err=True)
            ctx.exit(1)

    return start, end
