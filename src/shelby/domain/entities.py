"""Domain model entities for shelby.

These are pure data classes representing business concepts, independent of
the database schema. Services hand them out instead of ORM rows so that no
session state escapes a transaction.
"""

from dataclasses import dataclass
from datetime import datetime, date
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class Person:
    """Contact record."""

    id: int
    name: str
    address: str
    email: Optional[str]
    birthday: Optional[date]
    comment: Optional[str]


@dataclass(frozen=True)
class Group:
    """Group a person can be a member of."""

    id: int
    description: str


@dataclass(frozen=True)
class Membership:
    """Link between a person and a group."""

    id: int
    person_id: int
    group_id: int
    person_name: str
    group_description: str
    comment: Optional[str]
    updated: Optional[date]


@dataclass(frozen=True)
class Document:
    """Metadata of a stored document, without its payload."""

    id: int
    storage_key: str
    filename: str
    mime_type: str
    size: int
    checksum: str
    description: Optional[str]
    from_person_id: Optional[int]
    to_person_id: Optional[int]
    processed_by: Optional[int]
    received: Optional[date]
    reference_count: int
    created_at: datetime


@dataclass(frozen=True)
class CostCenter:
    """Top-level grouping for budget reporting."""

    id: int
    name: str


@dataclass(frozen=True)
class Category:
    """Grouping of accounts."""

    id: int
    name: str


@dataclass(frozen=True)
class Account:
    """Ledger account with its cached balance."""

    id: int
    name: str
    code: Optional[int]
    category_id: int
    cost_center_id: int
    balance: Decimal
    created_at: datetime


@dataclass(frozen=True)
class Entry:
    """Immutable posting against one account.

    reversed_by_id is derived from the reversing entry, never stored on this row.
    """

    id: int
    account_id: int
    date: date
    amount: Decimal
    description: str
    document_id: Optional[int]
    reverses_id: Optional[int]
    reversed_by_id: Optional[int]
    created_by: Optional[int]
    created_at: datetime

    @property
    def is_reversed(self) -> bool:
        return self.reversed_by_id is not None


@dataclass(frozen=True)
class User:
    """Login identity. The password hash never leaves the database layer."""

    id: int
    username: str
    active: bool
    person_id: Optional[int]
    created_at: datetime


@dataclass(frozen=True)
class AccountSummary:
    """Balance of one account within its cost center and category."""

    cost_center: str
    category: str
    account: str
    account_id: int
    balance: Decimal


@dataclass(frozen=True)
class BalanceMismatch:
    """Cached account balance that disagrees with its entries."""

    account_id: int
    cached: Decimal
    computed: Decimal
