"""Abstract metadata store interface."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, TypeVar

from shelby.utils.pagination import Page, Pagination

T = TypeVar("T")


class Transaction(ABC):
    """Unit of isolation with typed table operations.

    Every invariant check a service performs through a transaction is
    evaluated against the same snapshot the mutation commits into.
    """

    readonly: bool

    @abstractmethod
    def insert(self, model: type, **values: Any) -> Any:
        """Insert a row and return it with its server-assigned ID."""
        pass

    @abstractmethod
    def get(self, model: type, identifier: int) -> Optional[Any]:
        """Get a row by primary key."""
        pass

    @abstractmethod
    def require(self, model: type, identifier: int, message: str) -> Any:
        """Get a row by primary key or raise NotFoundError with message."""
        pass

    @abstractmethod
    def update(self, row: Any, **values: Any) -> Any:
        """Update columns of a loaded row."""
        pass

    @abstractmethod
    def delete(self, row: Any) -> None:
        """Delete a loaded row."""
        pass

    @abstractmethod
    def count(self, model: type, *criteria: Any) -> int:
        """Count rows matching SQLAlchemy criteria."""
        pass

    @abstractmethod
    def exists(self, model: type, *criteria: Any) -> bool:
        """Check whether any row matches SQLAlchemy criteria."""
        pass

    @abstractmethod
    def select(
        self,
        model: type,
        filters: Optional[dict[str, Any]] = None,
        pagination: Optional[Pagination] = None,
        criteria: tuple = (),
    ) -> Page:
        """Select one page of rows.

        Args:
            model: ORM model class
            filters: Equality filters on the model's filterable columns
            pagination: Window and sort; defaults to the first page by ID
            criteria: Additional SQLAlchemy criteria (e.g. date ranges)

        Returns:
            Page of ORM rows
        """
        pass

    @abstractmethod
    def scalar(self, statement: Any) -> Any:
        """Execute a select statement and return its first value."""
        pass

    @abstractmethod
    def all(self, statement: Any) -> list:
        """Execute a select statement and return all result rows."""
        pass


class Database(ABC):
    """Abstract metadata store interface for shelby."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def begin(self, readonly: bool = False) -> Transaction:
        """Open a transaction. Write transactions hold the writer lock."""
        pass

    @abstractmethod
    def commit(self, transaction: Transaction) -> None:
        """Commit and close a transaction."""
        pass

    @abstractmethod
    def rollback(self, transaction: Transaction) -> None:
        """Roll back and close a transaction."""
        pass

    @abstractmethod
    def run_in_transaction(
        self, work: Callable[[Transaction], T], readonly: bool = False
    ) -> T:
        """Run work inside one transaction, retrying while the store is busy.

        Returns:
            Whatever work returns, after a successful commit

        Raises:
            BusyError: If the store stayed locked through every retry
            ConflictError: If a storage-level integrity constraint failed
            StorageIoError: For any other storage failure
        """
        pass
