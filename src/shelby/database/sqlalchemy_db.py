"""SQLAlchemy implementation of the metadata store for embedded SQLite."""

import logging
import time
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from shelby.database.base import Database, Transaction
from shelby.database.models import Base
from shelby.domain.errors import (
    BusyError,
    ConflictError,
    NotFoundError,
    StorageIoError,
    ValidationError,
)
from shelby.utils.pagination import Order, Page, Pagination

logger = logging.getLogger(__name__)

T = TypeVar("T")

READONLY_OPTION = "shelby_readonly"


def _on_connect(dbapi_connection, connection_record) -> None:
    # Take transaction control away from pysqlite so _on_begin decides the lock mode.
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def _on_begin(connection) -> None:
    if connection.get_execution_options().get(READONLY_OPTION):
        connection.exec_driver_sql("BEGIN")
    else:
        connection.exec_driver_sql("BEGIN IMMEDIATE")


def _is_busy(error: OperationalError) -> bool:
    message = str(error.orig).lower()
    return "locked" in message or "busy" in message


class SQLAlchemyTransaction(Transaction):
    """Transaction backed by one SQLAlchemy session."""

    def __init__(self, session: Session, readonly: bool):
        self.session = session
        self.readonly = readonly

    def _check_writable(self) -> None:
        if self.readonly:
            raise RuntimeError("Cannot modify rows inside a readonly transaction")

    def insert(self, model: type, **values: Any) -> Any:
        self._check_writable()
        row = model(**values)
        self.session.add(row)
        self.session.flush()
        return row

    def get(self, model: type, identifier: int) -> Optional[Any]:
        return self.session.get(model, identifier)

    def require(self, model: type, identifier: int, message: str) -> Any:
        row = self.get(model, identifier)
        if row is None:
            raise NotFoundError(message)
        return row

    def update(self, row: Any, **values: Any) -> Any:
        self._check_writable()
        for name, value in values.items():
            setattr(row, name, value)
        self.session.flush()
        return row

    def delete(self, row: Any) -> None:
        self._check_writable()
        self.session.delete(row)
        self.session.flush()

    def count(self, model: type, *criteria: Any) -> int:
        return self.session.query(model).filter(*criteria).count()

    def exists(self, model: type, *criteria: Any) -> bool:
        return self.session.query(model.id).filter(*criteria).first() is not None

    def select(
        self,
        model: type,
        filters: Optional[dict[str, Any]] = None,
        pagination: Optional[Pagination] = None,
        criteria: tuple = (),
    ) -> Page:
        query = self.session.query(model)

        for name, value in (filters or {}).items():
            if name not in model.__filterable__:
                raise ValidationError(f"Cannot filter {model.__tablename__} by '{name}'")
            column = getattr(model, name)
            query = query.filter(column.is_(None) if value is None else column == value)

        if criteria:
            query = query.filter(*criteria)

        if pagination is None:
            pagination = Pagination()
        if pagination.column not in model.__sortable__:
            raise ValidationError(
                f"Cannot sort {model.__tablename__} by '{pagination.column}'"
            )

        column = getattr(model, pagination.column)
        if pagination.order == Order.ASCENDING:
            query = query.order_by(column.asc(), model.id.asc())
        else:
            query = query.order_by(column.desc(), model.id.desc())

        # One extra row tells whether a next page exists
        rows = query.offset(pagination.offset).limit(pagination.limit + 1).all()
        return Page(
            rows=tuple(rows[: pagination.limit]),
            has_previous=pagination.offset > 0,
            has_next=len(rows) > pagination.limit,
            pagination=pagination,
        )

    def scalar(self, statement: Any) -> Any:
        """Execute a select statement and return its first column of the first row."""
        return self.session.execute(statement).scalar()

    def all(self, statement: Any) -> list:
        """Execute a select statement and return all rows."""
        return list(self.session.execute(statement).all())


class SQLAlchemyDatabase(Database):
    """SQLAlchemy-based implementation of Database interface."""

    def __init__(
        self,
        database_url: str,
        busy_timeout: float = 5.0,
        busy_retries: int = 3,
        busy_backoff: float = 0.05,
    ):
        """Initialize SQLAlchemy database.

        Args:
            database_url: SQLAlchemy SQLite URL (e.g., 'sqlite:///path/to.db')
            busy_timeout: Seconds a statement waits for a lock before failing
            busy_retries: Extra attempts for a transaction that hit a busy store
            busy_backoff: Initial retry delay in seconds, doubled per attempt
        """
        self.database_url = database_url
        self.busy_retries = busy_retries
        self.busy_backoff = busy_backoff
        self.engine: Engine = create_engine(
            database_url,
            echo=False,
            connect_args={"timeout": busy_timeout, "check_same_thread": False},
        )
        event.listen(self.engine, "connect", _on_connect)
        event.listen(self.engine, "begin", _on_begin)

        self._writer = sessionmaker(bind=self.engine, expire_on_commit=False)
        self._reader = sessionmaker(
            bind=self.engine.execution_options(**{READONLY_OPTION: True}),
            expire_on_commit=False,
        )

    def connect(self) -> None:
        """Connect to the database."""
        # Connections are pooled lazily, so this only checks that the file opens
        try:
            with self.engine.connect() as connection:
                connection.exec_driver_sql("SELECT 1")
        except DBAPIError as exc:
            raise StorageIoError(f"Cannot open database {self.database_url}: {exc.orig}") from exc

    def disconnect(self) -> None:
        """Disconnect from the database."""
        self.engine.dispose()

    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        try:
            Base.metadata.create_all(self.engine)
        except DBAPIError as exc:
            raise StorageIoError(f"Cannot create schema: {exc.orig}") from exc

    def begin(self, readonly: bool = False) -> SQLAlchemyTransaction:
        """Open a transaction. The SQL BEGIN is emitted on first use."""
        factory = self._reader if readonly else self._writer
        return SQLAlchemyTransaction(factory(), readonly)

    def commit(self, transaction: SQLAlchemyTransaction) -> None:
        """Commit and close a transaction."""
        try:
            if transaction.readonly:
                transaction.session.rollback()
            else:
                transaction.session.commit()
        finally:
            transaction.session.close()

    def rollback(self, transaction: SQLAlchemyTransaction) -> None:
        """Roll back and close a transaction."""
        try:
            transaction.session.rollback()
        finally:
            transaction.session.close()

    def run_in_transaction(
        self, work: Callable[[SQLAlchemyTransaction], T], readonly: bool = False
    ) -> T:
        """Run work inside one transaction, retrying while the store is busy."""
        attempt = 0
        while True:
            transaction = self.begin(readonly=readonly)
            try:
                result = work(transaction)
                self.commit(transaction)
                return result
            except OperationalError as exc:
                self.rollback(transaction)
                if not _is_busy(exc):
                    raise StorageIoError(f"Storage failure: {exc.orig}") from exc
                if attempt >= self.busy_retries:
                    raise BusyError(
                        f"Database is busy, gave up after {attempt + 1} attempts"
                    ) from exc
                delay = self.busy_backoff * (2**attempt)
                attempt += 1
                logger.warning(
                    "Database busy, retrying in %.3fs (retry %d of %d)",
                    delay,
                    attempt,
                    self.busy_retries,
                )
                time.sleep(delay)
            except IntegrityError as exc:
                self.rollback(transaction)
                raise ConflictError(f"Integrity constraint violated: {exc.orig}") from exc
            except DBAPIError as exc:
                self.rollback(transaction)
                raise StorageIoError(f"Storage failure: {exc.orig}") from exc
            except BaseException:
                self.rollback(transaction)
                raise

