"""Metadata store layer for shelby."""

from shelby.database.base import Database, Transaction
from shelby.database.factories import create_sqlite_database

__all__ = ["Database", "Transaction", "create_sqlite_database"]
