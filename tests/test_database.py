"""Tests for the SQLAlchemy metadata store."""

import sqlite3
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from shelby.database.models import CostCenter, Group, Person
from shelby.domain.errors import (
    BusyError,
    ConflictError,
    NotFoundError,
    StorageIoError,
    ValidationError,
)
from shelby.utils.pagination import Order, Pagination


def _busy_error() -> OperationalError:
    return OperationalError("BEGIN IMMEDIATE", {}, sqlite3.OperationalError("database is locked"))


def test_schema_and_layout(settings, temp_db):
    """Test that the data root holds the database file and document area."""
    assert settings.database_path.is_file()
    assert settings.documents_dir.is_dir()


def test_commit_makes_rows_visible(temp_db):
    tx = temp_db.begin()
    group_id = tx.insert(Group, description="Board").id
    temp_db.commit(tx)

    description = temp_db.run_in_transaction(
        lambda tx: tx.get(Group, group_id).description, readonly=True
    )
    assert description == "Board"


def test_rollback_discards_rows(temp_db):
    tx = temp_db.begin()
    tx.insert(Group, description="Board")
    temp_db.rollback(tx)

    assert temp_db.run_in_transaction(lambda tx: tx.count(Group), readonly=True) == 0


def test_failed_work_rolls_back(temp_db):
    """Test that an exception inside work leaves no partial state."""

    def work(tx):
        tx.insert(Group, description="Board")
        raise ValidationError("stop")

    with pytest.raises(ValidationError):
        temp_db.run_in_transaction(work)

    assert temp_db.run_in_transaction(lambda tx: tx.count(Group), readonly=True) == 0


def test_readonly_transaction_rejects_writes(temp_db):
    with pytest.raises(RuntimeError):
        temp_db.run_in_transaction(
            lambda tx: tx.insert(Group, description="Board"), readonly=True
        )


def test_require_missing_row(temp_db):
    with pytest.raises(NotFoundError, match="Group 7 not found"):
        temp_db.run_in_transaction(
            lambda tx: tx.require(Group, 7, "Group 7 not found"), readonly=True
        )


def test_integrity_error_becomes_conflict(temp_db):
    temp_db.run_in_transaction(lambda tx: tx.insert(CostCenter, name="General"))

    with pytest.raises(ConflictError):
        temp_db.run_in_transaction(lambda tx: tx.insert(CostCenter, name="General"))


def test_foreign_keys_enforced(temp_db):
    from shelby.database.models import Membership

    with pytest.raises(ConflictError):
        temp_db.run_in_transaction(
            lambda tx: tx.insert(Membership, person_id=41, group_id=42)
        )


def test_busy_is_retried(temp_db):
    """Test that a transient lock is retried transparently."""
    calls = []

    def work(tx):
        calls.append(1)
        if len(calls) < 3:
            raise _busy_error()
        return tx.insert(Group, description="Board").id

    assert temp_db.run_in_transaction(work) == 1
    assert len(calls) == 3


def test_busy_gives_up_with_busy_error(temp_db):
    calls = []

    def work(tx):
        calls.append(1)
        raise _busy_error()

    with pytest.raises(BusyError) as excinfo:
        temp_db.run_in_transaction(work)

    assert excinfo.value.retryable
    assert len(calls) == temp_db.busy_retries + 1


def test_other_operational_error_is_storage_error(temp_db):
    def work(tx):
        raise OperationalError("SELECT", {}, sqlite3.OperationalError("disk I/O error"))

    with pytest.raises(StorageIoError) as excinfo:
        temp_db.run_in_transaction(work)
    assert not isinstance(excinfo.value, BusyError)


def test_money_roundtrip_is_exact(temp_db, chart, account_service):
    """Test that amounts come back as two-digit Decimals."""
    from shelby.database.models import Account

    def work(tx):
        account = tx.get(Account, chart["fees"])
        tx.update(account, balance=Decimal("0.1") + Decimal("0.2"))

    temp_db.run_in_transaction(work)
    assert account_service.get_account(chart["fees"]).balance == Decimal("0.30")


def _add_groups(temp_db, count):
    def work(tx):
        for number in range(count):
            tx.insert(Group, description=f"Group {number:02d}")

    temp_db.run_in_transaction(work)


def _select(temp_db, model, filters=None, pagination=None):
    return temp_db.run_in_transaction(
        lambda tx: tx.select(model, filters, pagination).map(lambda row: row.id),
        readonly=True,
    )


def test_select_default_page(temp_db):
    """Test that the default page has ten rows and a next page."""
    _add_groups(temp_db, 12)

    page = _select(temp_db, Group)

    assert list(page) == list(range(1, 11))
    assert page.has_next
    assert not page.has_previous


def test_select_last_page(temp_db):
    _add_groups(temp_db, 12)

    page = _select(temp_db, Group, pagination=Pagination(offset=10))

    assert list(page) == [11, 12]
    assert not page.has_next
    assert page.has_previous


def test_select_exact_fit_has_no_next(temp_db):
    _add_groups(temp_db, 10)
    assert not _select(temp_db, Group).has_next


def test_select_descending(temp_db):
    _add_groups(temp_db, 3)

    page = _select(
        temp_db, Group, pagination=Pagination(order=Order.DESCENDING, column="description")
    )

    assert list(page) == [3, 2, 1]


def test_select_filters(temp_db):
    _add_groups(temp_db, 3)
    assert list(_select(temp_db, Group, {"description": "Group 01"})) == [2]


def test_select_rejects_unknown_sort_column(temp_db):
    with pytest.raises(ValidationError):
        _select(temp_db, Person, pagination=Pagination(column="address"))


def test_select_rejects_unknown_filter(temp_db):
    with pytest.raises(ValidationError):
        _select(temp_db, Person, {"address": "Main Street"})


def test_pagination_clamps_limit():
    assert Pagination(limit=500).limit == 100


@pytest.mark.parametrize("kwargs", [{"offset": -1}, {"limit": 0}, {"order": "sideways"}])
def test_pagination_rejects_bad_values(kwargs):
    with pytest.raises(ValidationError):
        Pagination(**kwargs)


def test_pagination_neighbours():
    pagination = Pagination(offset=5, limit=10)

    assert pagination.next_page().offset == 15
    assert pagination.previous_page().offset == 0
