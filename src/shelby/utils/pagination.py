"""Pagination and sorting contract shared by every list operation."""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, TypeVar

from shelby.domain.errors import ValidationError

T = TypeVar("T")
U = TypeVar("U")

DEFAULT_LIMIT = 10
MAXIMUM_LIMIT = 100


class Order(str, Enum):
    """Sort direction."""

    ASCENDING = "asc"
    DESCENDING = "desc"


@dataclass(frozen=True)
class Pagination:
    """A window into sorted selection results.

    The limit is clamped to MAXIMUM_LIMIT. Whether the column is sortable is
    decided by the entity being listed.
    """

    offset: int = 0
    limit: int = DEFAULT_LIMIT
    order: Order = Order.ASCENDING
    column: str = "id"

    def __post_init__(self):
        if self.offset < 0:
            raise ValidationError(f"Offset must not be negative, got {self.offset}")
        if self.limit < 1:
            raise ValidationError(f"Limit must be positive, got {self.limit}")
        if self.limit > MAXIMUM_LIMIT:
            object.__setattr__(self, "limit", MAXIMUM_LIMIT)
        try:
            order = Order(self.order)
        except ValueError:
            raise ValidationError(f"Unknown sort order '{self.order}'")
        object.__setattr__(self, "order", order)

    @property
    def end_offset(self) -> int:
        return self.offset + self.limit

    def next_page(self) -> "Pagination":
        return Pagination(self.end_offset, self.limit, self.order, self.column)

    def previous_page(self) -> "Pagination":
        return Pagination(max(self.offset - self.limit, 0), self.limit, self.order, self.column)


@dataclass(frozen=True)
class Page(Generic[T]):
    """Rows of one page plus availability of its neighbours."""

    rows: tuple[T, ...]
    has_previous: bool
    has_next: bool
    pagination: Pagination

    def map(self, convert: Callable[[T], U]) -> "Page[U]":
        """Convert every row, keeping the page flags."""
        return Page(
            rows=tuple(convert(row) for row in self.rows),
            has_previous=self.has_previous,
            has_next=self.has_next,
            pagination=self.pagination,
        )

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self):
        return iter(self.rows)
