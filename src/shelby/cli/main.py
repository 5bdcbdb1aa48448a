"""Main CLI entry point."""

import click

from shelby.config import Settings, configure_logging
from shelby.database.factories import create_sqlite_database
from shelby.domain.errors import StorageIoError
from shelby.storage.coordinator import ConsistencyCoordinator
from shelby.storage.documents import DocumentStore

# Import and register all commands at module level
from shelby.cli.commands import (
    accounting,
    document,
    ledger,
    maintenance,
    person,
    user,
)


@click.group()
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False),
    help="Data directory holding shelby.db and documents/ (overrides SHELBY_DATA_DIR)",
    envvar="SHELBY_DATA_DIR",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    help="Log level (overrides SHELBY_LOG_LEVEL)",
)
@click.pass_context
def cli(ctx, data_dir: str | None, log_level: str | None):
    """Shelby - association records and ledger administration.

    Manages persons, groups, memberships, documents, users and the
    accounting ledger stored in one data directory.
    """
    ctx.ensure_object(dict)

    # Open the stores only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is None:
        return

    settings = Settings.from_env(data_dir)
    configure_logging(log_level or settings.log_level)

    try:
        db = create_sqlite_database(settings)
        db.connect()
        db.initialize_schema()
        documents = DocumentStore(settings.documents_dir)
        documents.open()
    except (StorageIoError, OSError) as e:
        click.echo(f"Error: Cannot open data directory {settings.data_root}: {e}", err=True)
        ctx.exit(1)

    ctx.call_on_close(db.disconnect)
    ctx.obj["settings"] = settings
    ctx.obj["db"] = db
    ctx.obj["coordinator"] = ConsistencyCoordinator(db, documents)


# Register all commands
person.register_commands(cli)
accounting.register_commands(cli)
ledger.register_commands(cli)
document.register_commands(cli)
user.register_commands(cli)
maintenance.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
