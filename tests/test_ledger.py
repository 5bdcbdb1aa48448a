"""Tests for posting entries and reconciling balances."""

import threading
from datetime import date
from decimal import Decimal

import pytest

from shelby.domain.errors import (
    ConflictError,
    InvalidAmount,
    NotFoundError,
    UnknownAccount,
    ValidationError,
)
from shelby.utils.pagination import Order, Pagination


def test_post_updates_balance(ledger, chart):
    """Posting 500.00 and -120.00 leaves a balance of 380.00."""
    ledger.post(chart["fees"], Decimal("500.00"), "Fees")
    ledger.post(chart["fees"], Decimal("-120.00"), "Refund")

    assert ledger.balance(chart["fees"]) == Decimal("380.00")


def test_post_accepts_amount_strings(ledger, chart):
    ledger.post(chart["fees"], "1,234.50", "Fees")
    assert ledger.balance(chart["fees"]) == Decimal("1234.50")


def test_post_stores_entry(ledger, chart, sample_user):
    entry_id = ledger.post(
        chart["fees"], Decimal("25.00"), "Fee Alice", date=date(2026, 3, 1), actor=sample_user
    )

    entry = ledger.get_entry(entry_id)
    assert entry.account_id == chart["fees"]
    assert entry.amount == Decimal("25.00")
    assert entry.date == date(2026, 3, 1)
    assert entry.description == "Fee Alice"
    assert entry.created_by == sample_user
    assert not entry.is_reversed


def test_post_unknown_account(ledger):
    with pytest.raises(UnknownAccount, match="Account 999 not found"):
        ledger.post(999, Decimal("1.00"), "Nowhere")


def test_unknown_account_is_not_found(ledger):
    with pytest.raises(NotFoundError):
        ledger.post(999, Decimal("1.00"), "Nowhere")


@pytest.mark.parametrize(
    "amount",
    [
        Decimal("0"),
        Decimal("0.00"),
        Decimal("1.005"),
        Decimal("NaN"),
        Decimal("Infinity"),
        1.5,
        "1e30",
        "92233720368547758.08",
    ],
)
def test_post_invalid_amount(ledger, chart, amount):
    with pytest.raises(InvalidAmount):
        ledger.post(chart["fees"], amount, "Bad")

    assert ledger.balance(chart["fees"]) == Decimal("0.00")
    assert len(ledger.list_entries()) == 0


def test_post_beyond_balance_limit_rolls_back(ledger, chart):
    ledger.post(chart["fees"], "900000000000000.00", "Endowment")

    with pytest.raises(InvalidAmount, match="balance limit"):
        ledger.post(chart["fees"], "900000000000000.00", "Endowment")

    assert ledger.balance(chart["fees"]) == Decimal("900000000000000.00")
    assert len(ledger.list_entries()) == 1
    ledger.post(chart["fees"], "-900000000000000.00", "Withdrawal")
    assert ledger.balance(chart["fees"]) == Decimal("0.00")


def test_invalid_amount_is_validation_error(ledger, chart):
    with pytest.raises(ValidationError):
        ledger.post(chart["fees"], "twelve", "Bad")


def test_post_unknown_actor_rolls_back(ledger, chart):
    with pytest.raises(NotFoundError, match="User 42"):
        ledger.post(chart["fees"], Decimal("10.00"), "Fee", actor=42)

    assert ledger.balance(chart["fees"]) == Decimal("0.00")


def test_reverse_restores_balance(ledger, chart):
    entry_id = ledger.post(chart["rent"], Decimal("-300.00"), "Rent March")

    reversal_id = ledger.reverse(entry_id)

    assert ledger.balance(chart["rent"]) == Decimal("0.00")
    reversal = ledger.get_entry(reversal_id)
    assert reversal.amount == Decimal("300.00")
    assert reversal.reverses_id == entry_id
    assert reversal.description == f"Reversal of entry {entry_id}"

    original = ledger.get_entry(entry_id)
    assert original.amount == Decimal("-300.00")
    assert original.reversed_by_id == reversal_id
    assert original.is_reversed


def test_reverse_twice_rejected(ledger, chart):
    entry_id = ledger.post(chart["rent"], Decimal("-300.00"), "Rent March")
    ledger.reverse(entry_id)

    with pytest.raises(ConflictError, match="already reversed"):
        ledger.reverse(entry_id)

    assert ledger.balance(chart["rent"]) == Decimal("0.00")


def test_reversal_cannot_be_reversed(ledger, chart):
    entry_id = ledger.post(chart["rent"], Decimal("-300.00"), "Rent March")
    reversal_id = ledger.reverse(entry_id)

    with pytest.raises(ConflictError):
        ledger.reverse(reversal_id)


def test_reverse_unknown_entry(ledger):
    with pytest.raises(NotFoundError, match="Entry 5 not found"):
        ledger.reverse(5)


def test_totals_reconcile_across_hierarchy(ledger, chart):
    """Category and cost center totals add up from account balances."""
    ledger.post(chart["fees"], Decimal("500.00"), "Fees")
    ledger.post(chart["rent"], Decimal("-200.00"), "Rent")
    ledger.post(chart["camp_costs"], Decimal("-75.25"), "Tents")
    entry_id = ledger.post(chart["camp_costs"], Decimal("-10.00"), "Wrong booking")
    ledger.reverse(entry_id)

    assert ledger.category_total(chart["income"]) == Decimal("500.00")
    assert ledger.category_total(chart["expenses"]) == Decimal("-275.25")
    assert ledger.cost_center_total(chart["general"]) == Decimal("300.00")
    assert ledger.cost_center_total(chart["camp"]) == Decimal("-75.25")

    for cost_center in (chart["general"], chart["camp"]):
        by_category = sum(
            ledger.category_total(category, cost_center)
            for category in (chart["income"], chart["expenses"])
        )
        assert by_category == ledger.cost_center_total(cost_center)

    grand_total = ledger.category_total(chart["income"]) + ledger.category_total(
        chart["expenses"]
    )
    assert grand_total == ledger.cost_center_total(chart["general"]) + ledger.cost_center_total(
        chart["camp"]
    )


def test_empty_totals_are_zero(ledger, chart, category_service):
    empty = category_service.create_category("Empty")
    assert ledger.category_total(empty) == Decimal("0.00")
    assert ledger.cost_center_total(chart["camp"]) == Decimal("0.00")


def test_totals_unknown_parents(ledger):
    with pytest.raises(NotFoundError):
        ledger.category_total(999)
    with pytest.raises(NotFoundError):
        ledger.cost_center_total(999)


def test_account_summary_order(ledger, chart):
    ledger.post(chart["fees"], Decimal("500.00"), "Fees")

    rows = ledger.account_summary()

    assert [(r.cost_center, r.category, r.account) for r in rows] == [
        ("General", "Expenses", "Room rent"),
        ("General", "Income", "Membership fees"),
        ("Summer camp", "Expenses", "Camp costs"),
    ]
    assert rows[1].balance == Decimal("500.00")


def test_account_summary_one_cost_center(ledger, chart):
    rows = ledger.account_summary(chart["camp"])
    assert [r.account_id for r in rows] == [chart["camp_costs"]]


def test_list_entries_date_range(ledger, chart):
    ledger.post(chart["fees"], Decimal("1.00"), "January", date=date(2026, 1, 15))
    ledger.post(chart["fees"], Decimal("2.00"), "February", date=date(2026, 2, 15))
    ledger.post(chart["fees"], Decimal("3.00"), "March", date=date(2026, 3, 15))

    page = ledger.list_entries(start_date=date(2026, 2, 1), end_date=date(2026, 3, 31))
    assert [e.description for e in page] == ["February", "March"]


def test_list_entries_sorted_by_amount(ledger, chart):
    for amount in ("5.00", "-1.00", "3.00"):
        ledger.post(chart["fees"], Decimal(amount), "x")

    page = ledger.list_entries(
        {"account_id": chart["fees"]},
        Pagination(order=Order.DESCENDING, column="amount"),
    )
    assert [e.amount for e in page] == [Decimal("5.00"), Decimal("3.00"), Decimal("-1.00")]


def test_list_entries_inverted_range(ledger):
    with pytest.raises(ValidationError):
        ledger.list_entries(start_date=date(2026, 2, 1), end_date=date(2026, 1, 1))


def test_verify_and_rebuild_balances(ledger, chart, temp_db):
    """Test that a drifted cached balance is reported and then repaired."""
    from shelby.database.models import Account

    ledger.post(chart["fees"], Decimal("500.00"), "Fees")
    assert ledger.verify_balances() == []

    temp_db.run_in_transaction(
        lambda tx: tx.update(tx.get(Account, chart["fees"]), balance=Decimal("1.00"))
    )

    mismatches = ledger.verify_balances()
    assert [(m.account_id, m.cached, m.computed) for m in mismatches] == [
        (chart["fees"], Decimal("1.00"), Decimal("500.00"))
    ]

    corrections = ledger.rebuild_balances()
    assert len(corrections) == 1
    assert ledger.balance(chart["fees"]) == Decimal("500.00")
    assert ledger.verify_balances() == []


def test_concurrent_posting_keeps_balances(ledger, chart):
    """Parallel writers never lose an update of the cached balance."""
    errors = []

    def post_many(account_id, amount):
        try:
            for _ in range(10):
                ledger.post(account_id, amount, "parallel")
        except Exception as exc:  # surfaced through the errors list
            errors.append(exc)

    threads = [
        threading.Thread(target=post_many, args=(chart["fees"], Decimal("1.25"))),
        threading.Thread(target=post_many, args=(chart["fees"], Decimal("2.50"))),
        threading.Thread(target=post_many, args=(chart["rent"], Decimal("-0.10"))),
        threading.Thread(target=post_many, args=(chart["camp_costs"], Decimal("-3.00"))),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert ledger.balance(chart["fees"]) == Decimal("37.50")
    assert ledger.balance(chart["rent"]) == Decimal("-1.00")
    assert ledger.cost_center_total(chart["general"]) == Decimal("36.50")
    assert ledger.cost_center_total(chart["camp"]) == Decimal("-30.00")
    assert ledger.verify_balances() == []
