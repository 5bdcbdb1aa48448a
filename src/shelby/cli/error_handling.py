"""CLI error handling helpers."""

import click

from shelby.domain.errors import BusyError, ShelbyError


def handle_domain_error(ctx: click.Context, error: ShelbyError) -> None:
    """Render a shelby error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    if isinstance(error, BusyError):
        click.echo("Nothing was changed; please try again.", err=True)
    ctx.exit(1)
