"""SQLAlchemy models for the shelby metadata store.

`__sortable__` and `__filterable__` list the columns the generic select
accepts for ordering and equality filters.
"""

from datetime import datetime, UTC
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import backref, declarative_base, relationship

from shelby.database.types import Money

Base = declarative_base()


def _now() -> datetime:
    return datetime.now(UTC)


class Person(Base):
    """Contact model."""

    __tablename__ = "persons"
    __sortable__ = ("id", "name", "email", "birthday")
    __filterable__ = ("name", "email")

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    address = Column(String, nullable=False, default="")
    email = Column(String, nullable=True)
    birthday = Column(Date, nullable=True)
    comment = Column(String, nullable=True)

    memberships = relationship("Membership", back_populates="person")


class Group(Base):
    """Group model."""

    __tablename__ = "groups"
    __sortable__ = ("id", "description")
    __filterable__ = ("description",)

    id = Column(Integer, primary_key=True)
    description = Column(String, nullable=False)

    memberships = relationship("Membership", back_populates="group")


class Membership(Base):
    """Person to group link."""

    __tablename__ = "memberships"
    __sortable__ = ("id", "person_id", "group_id", "updated")
    __filterable__ = ("person_id", "group_id")

    id = Column(Integer, primary_key=True)
    person_id = Column(Integer, ForeignKey("persons.id"), nullable=False)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=False)
    updated = Column(Date, nullable=True)
    comment = Column(String, nullable=True)

    __table_args__ = (UniqueConstraint("person_id", "group_id", name="uq_membership_pair"),)

    person = relationship("Person", back_populates="memberships")
    group = relationship("Group", back_populates="memberships")


class User(Base):
    """Login identity model."""

    __tablename__ = "users"
    __sortable__ = ("id", "username", "created_at")
    __filterable__ = ("username", "active", "person_id")

    id = Column(Integer, primary_key=True)
    username = Column(String, unique=True, nullable=False)
    password_hash = Column(String, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    person_id = Column(Integer, ForeignKey("persons.id"), nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)


class Document(Base):
    """Metadata row of a file in the document area."""

    __tablename__ = "documents"
    __sortable__ = ("id", "filename", "size", "received", "created_at")
    __filterable__ = ("mime_type", "from_person_id", "to_person_id", "processed_by")

    id = Column(Integer, primary_key=True)
    storage_key = Column(String, unique=True, nullable=False)
    filename = Column(String, nullable=False)
    mime_type = Column(String, nullable=False)
    size = Column(Integer, nullable=False)
    checksum = Column(String, nullable=False)
    description = Column(String, nullable=True)
    from_person_id = Column(Integer, ForeignKey("persons.id"), nullable=True)
    to_person_id = Column(Integer, ForeignKey("persons.id"), nullable=True)
    processed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    received = Column(Date, nullable=True)
    reference_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (CheckConstraint("reference_count >= 0", name="ck_document_refcount"),)


class CostCenter(Base):
    """Cost center model."""

    __tablename__ = "cost_centers"
    __sortable__ = ("id", "name")
    __filterable__ = ("name",)

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)

    accounts = relationship("Account", back_populates="cost_center")


class Category(Base):
    """Account category model."""

    __tablename__ = "categories"
    __sortable__ = ("id", "name")
    __filterable__ = ("name",)

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)

    accounts = relationship("Account", back_populates="category")


class Account(Base):
    """Ledger account with cached balance."""

    __tablename__ = "accounts"
    __sortable__ = ("id", "name", "code", "balance")
    __filterable__ = ("name", "code", "category_id", "cost_center_id")

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    code = Column(Integer, nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    cost_center_id = Column(Integer, ForeignKey("cost_centers.id"), nullable=False)
    balance = Column(Money, default=Decimal("0.00"), nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    category = relationship("Category", back_populates="accounts")
    cost_center = relationship("CostCenter", back_populates="accounts")
    entries = relationship("Entry", back_populates="account")


class Entry(Base):
    """Posted ledger entry. Rows are never updated or deleted."""

    __tablename__ = "entries"
    __sortable__ = ("id", "date", "amount", "account_id")
    __filterable__ = ("account_id", "document_id", "reverses_id", "created_by")

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    date = Column(Date, nullable=False)
    amount = Column(Money, nullable=False)
    description = Column(String, nullable=False, default="")
    document_id = Column(Integer, ForeignKey("documents.id"), nullable=True)
    reverses_id = Column(Integer, ForeignKey("entries.id"), unique=True, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (CheckConstraint("amount != 0", name="ck_entry_nonzero"),)

    account = relationship("Account", back_populates="entries")
    reverses = relationship(
        "Entry", remote_side=[id], backref=backref("reversed_by", uselist=False)
    )
