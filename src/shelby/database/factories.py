"""Database factory functions for creating database instances."""

from shelby.config import Settings
from shelby.database.sqlalchemy_db import SQLAlchemyDatabase


def create_sqlite_database(settings: Settings) -> SQLAlchemyDatabase:
    """Create a SQLite database instance for a data root.

    Args:
        settings: Resolved settings; the database file lives at
            settings.database_path

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    settings.ensure_directories()
    database_url = f"sqlite:///{settings.database_path}"
    return SQLAlchemyDatabase(
        database_url,
        busy_timeout=settings.busy_timeout,
        busy_retries=settings.busy_retries,
        busy_backoff=settings.busy_backoff,
    )
