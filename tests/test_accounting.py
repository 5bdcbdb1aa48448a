"""Tests for account, category and cost center services."""

from decimal import Decimal

import pytest

from shelby.config import Settings
from shelby.database.models import Account
from shelby.domain.accounting import ANY_ENTRY, ZERO_BALANCE, AccountService
from shelby.domain.errors import (
    ConflictError,
    NotFoundError,
    ReferentialConflict,
    ValidationError,
)
from shelby.domain.listing import ListingService


def test_create_account_starts_at_zero(account_service, chart):
    account = account_service.get_account(chart["fees"])

    assert account.name == "Membership fees"
    assert account.code == 4000
    assert account.category_id == chart["income"]
    assert account.cost_center_id == chart["general"]
    assert account.balance == Decimal("0.00")


def test_create_account_duplicate_name(account_service, chart):
    with pytest.raises(ConflictError, match="already exists"):
        account_service.create_account("Membership fees", chart["income"], chart["general"])


def test_create_account_unknown_category(account_service, chart):
    with pytest.raises(NotFoundError, match="Category 999"):
        account_service.create_account("Donations", 999, chart["general"])


def test_create_account_unknown_cost_center(account_service, chart):
    with pytest.raises(NotFoundError, match="Cost center 999"):
        account_service.create_account("Donations", chart["income"], 999)


def test_create_account_negative_code(account_service, chart):
    with pytest.raises(ValidationError):
        account_service.create_account("Donations", chart["income"], chart["general"], code=-1)


def test_update_account_moves_cost_center(account_service, chart):
    account = account_service.update_account(chart["rent"], cost_center_id=chart["camp"])

    assert account.cost_center_id == chart["camp"]
    assert account.name == "Room rent"


def test_update_account_name_taken(account_service, chart):
    with pytest.raises(ConflictError):
        account_service.update_account(chart["rent"], name="Camp costs")


def test_delete_unused_account(account_service, chart):
    account_service.delete_account(chart["rent"])
    assert account_service.get_account(chart["rent"]) is None


def test_delete_account_with_entries_blocked(account_service, ledger, chart):
    """Test that an account stays once used, even with a zero balance."""
    entry_id = ledger.post(chart["rent"], Decimal("-50.00"), "Rent")
    ledger.reverse(entry_id)
    assert ledger.balance(chart["rent"]) == Decimal("0.00")

    with pytest.raises(ReferentialConflict) as excinfo:
        account_service.delete_account(chart["rent"])

    assert "2 entries" in str(excinfo.value)
    assert account_service.get_account(chart["rent"]) is not None


def test_default_delete_guard_is_any_entry(account_service, settings, tmp_path):
    assert account_service.delete_guard == ANY_ENTRY
    assert settings.account_delete_guard == ANY_ENTRY
    assert Settings.from_env(tmp_path).account_delete_guard == ANY_ENTRY


def test_delete_guard_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("SHELBY_ACCOUNT_DELETE_GUARD", ZERO_BALANCE)
    assert Settings.from_env(tmp_path).account_delete_guard == ZERO_BALANCE


def test_zero_balance_guard_refuses_nonzero_balance(temp_db, account_service, chart):
    """An account without entries but with a drifted cached balance stays."""
    temp_db.run_in_transaction(
        lambda tx: tx.update(tx.get(Account, chart["rent"]), balance=Decimal("5.00"))
    )
    strict = AccountService(temp_db, delete_guard=ZERO_BALANCE)

    with pytest.raises(ReferentialConflict, match="balance is 5.00"):
        strict.delete_account(chart["rent"])
    assert account_service.get_account(chart["rent"]) is not None

    account_service.delete_account(chart["rent"])
    assert account_service.get_account(chart["rent"]) is None


def test_zero_balance_guard_still_refuses_used_accounts(temp_db, ledger, chart):
    entry_id = ledger.post(chart["rent"], Decimal("-50.00"), "Rent")
    ledger.reverse(entry_id)

    with pytest.raises(ReferentialConflict, match="2 entries"):
        AccountService(temp_db, delete_guard=ZERO_BALANCE).delete_account(chart["rent"])


def test_unknown_delete_guard(temp_db):
    with pytest.raises(ValidationError, match="Unknown account delete guard"):
        AccountService(temp_db, delete_guard="never")


def test_delete_category_with_accounts_blocked(category_service, chart):
    with pytest.raises(ReferentialConflict, match="2 accounts"):
        category_service.delete_category(chart["expenses"])


def test_delete_cost_center_with_accounts_blocked(cost_center_service, chart):
    with pytest.raises(ReferentialConflict, match="1 account"):
        cost_center_service.delete_cost_center(chart["camp"])


def test_delete_empty_category_and_cost_center(category_service, cost_center_service):
    category_id = category_service.create_category("Unused")
    cost_center_id = cost_center_service.create_cost_center("Unused")

    category_service.delete_category(category_id)
    cost_center_service.delete_cost_center(cost_center_id)

    assert category_service.get_category(category_id) is None
    assert cost_center_service.get_cost_center(cost_center_id) is None


def test_rename_category_conflict(category_service, chart):
    with pytest.raises(ConflictError, match="category named 'Income'"):
        category_service.rename_category(chart["expenses"], "Income")


def test_rename_cost_center(cost_center_service, chart):
    cost_center = cost_center_service.rename_cost_center(chart["camp"], "Winter camp")
    assert cost_center.name == "Winter camp"


def test_list_accounts_filtered(account_service, chart):
    page = account_service.list_accounts({"category_id": chart["expenses"]})
    assert sorted(a.name for a in page) == ["Camp costs", "Room rent"]


def test_listing_service_dispatches_by_kind(temp_db, chart):
    listing = ListingService(temp_db)

    assert "accounts" in listing.kinds()
    assert "balance" in listing.sortable_columns("accounts")
    assert [c.name for c in listing.list("cost_centers")] == ["General", "Summer camp"]


def test_listing_service_unknown_kind(temp_db):
    with pytest.raises(ValidationError, match="Unknown entity kind"):
        ListingService(temp_db).list("invoices")
