"""Account, category and cost center domain services.

Accounts belong to exactly one category and one cost center. Deletion of any
of the three is refused while something still refers to it.
"""

from typing import Any, Optional

from shelby.database.base import Database, Transaction
from shelby.database.mappers import (
    account_to_domain,
    category_to_domain,
    cost_center_to_domain,
)
from shelby.database.models import Account, Category, CostCenter, Entry
from shelby.domain.entities import (
    Account as AccountEntity,
    Category as CategoryEntity,
    CostCenter as CostCenterEntity,
)
from shelby.domain.errors import (
    ConflictError,
    ReferentialConflict,
    ValidationError,
    account_not_found,
    category_not_found,
    cost_center_not_found,
    delete_blocked,
)
from shelby.domain.listing import list_rows
from shelby.domain.person import require_text
from shelby.utils.pagination import Page, Pagination

# Account deletion policies
ANY_ENTRY = "any_entry"
ZERO_BALANCE = "zero_balance"
DELETE_GUARDS = (ANY_ENTRY, ZERO_BALANCE)


def _check_unique_name(
    tx: Transaction, model: type, kind: str, name: str, exclude_id: Optional[int] = None
) -> None:
    criteria = [model.name == name]
    if exclude_id is not None:
        criteria.append(model.id != exclude_id)
    if tx.exists(model, *criteria):
        raise ConflictError(f"A {kind} named '{name}' already exists")


class CostCenterService:
    """Service for managing cost centers."""

    def __init__(self, db: Database):
        """Initialize cost center service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_cost_center(self, name: str) -> int:
        """Create a cost center. Returns cost center ID.

        Raises:
            ConflictError: If the name is taken
        """
        name = require_text(name, "Name")

        def work(tx: Transaction) -> int:
            _check_unique_name(tx, CostCenter, "cost center", name)
            return tx.insert(CostCenter, name=name).id

        return self.db.run_in_transaction(work)

    def get_cost_center(self, cost_center_id: int) -> Optional[CostCenterEntity]:
        """Get cost center by ID, or None if not found."""

        def work(tx: Transaction) -> Optional[CostCenterEntity]:
            cost_center = tx.get(CostCenter, cost_center_id)
            return cost_center_to_domain(cost_center) if cost_center is not None else None

        return self.db.run_in_transaction(work, readonly=True)

    def rename_cost_center(self, cost_center_id: int, name: str) -> CostCenterEntity:
        """Rename a cost center."""
        name = require_text(name, "Name")

        def work(tx: Transaction) -> CostCenterEntity:
            cost_center = tx.require(
                CostCenter, cost_center_id, cost_center_not_found(cost_center_id)
            )
            _check_unique_name(tx, CostCenter, "cost center", name, exclude_id=cost_center_id)
            return cost_center_to_domain(tx.update(cost_center, name=name))

        return self.db.run_in_transaction(work)

    def delete_cost_center(self, cost_center_id: int) -> None:
        """Delete a cost center no account belongs to.

        Raises:
            NotFoundError: If the cost center does not exist
            ReferentialConflict: If accounts reference the cost center
        """

        def work(tx: Transaction) -> None:
            cost_center = tx.require(
                CostCenter, cost_center_id, cost_center_not_found(cost_center_id)
            )
            accounts = tx.count(Account, Account.cost_center_id == cost_center_id)
            if accounts:
                raise ReferentialConflict(
                    delete_blocked("cost center", cost_center_id, {"account": accounts})
                )
            tx.delete(cost_center)

        self.db.run_in_transaction(work)

    def list_cost_centers(
        self,
        filters: Optional[dict[str, Any]] = None,
        pagination: Optional[Pagination] = None,
    ) -> Page[CostCenterEntity]:
        """List one page of cost centers."""
        return list_rows(self.db, CostCenter, cost_center_to_domain, filters, pagination)


class CategoryService:
    """Service for managing account categories."""

    def __init__(self, db: Database):
        """Initialize category service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_category(self, name: str) -> int:
        """Create a category. Returns category ID.

        Raises:
            ConflictError: If the name is taken
        """
        name = require_text(name, "Name")

        def work(tx: Transaction) -> int:
            _check_unique_name(tx, Category, "category", name)
            return tx.insert(Category, name=name).id

        return self.db.run_in_transaction(work)

    def get_category(self, category_id: int) -> Optional[CategoryEntity]:
        """Get category by ID, or None if not found."""

        def work(tx: Transaction) -> Optional[CategoryEntity]:
            category = tx.get(Category, category_id)
            return category_to_domain(category) if category is not None else None

        return self.db.run_in_transaction(work, readonly=True)

    def rename_category(self, category_id: int, name: str) -> CategoryEntity:
        """Rename a category."""
        name = require_text(name, "Name")

        def work(tx: Transaction) -> CategoryEntity:
            category = tx.require(Category, category_id, category_not_found(category_id))
            _check_unique_name(tx, Category, "category", name, exclude_id=category_id)
            return category_to_domain(tx.update(category, name=name))

        return self.db.run_in_transaction(work)

    def delete_category(self, category_id: int) -> None:
        """Delete a category no account belongs to.

        Raises:
            NotFoundError: If the category does not exist
            ReferentialConflict: If accounts reference the category
        """

        def work(tx: Transaction) -> None:
            category = tx.require(Category, category_id, category_not_found(category_id))
            accounts = tx.count(Account, Account.category_id == category_id)
            if accounts:
                raise ReferentialConflict(
                    delete_blocked("category", category_id, {"account": accounts})
                )
            tx.delete(category)

        self.db.run_in_transaction(work)

    def list_categories(
        self,
        filters: Optional[dict[str, Any]] = None,
        pagination: Optional[Pagination] = None,
    ) -> Page[CategoryEntity]:
        """List one page of categories."""
        return list_rows(self.db, Category, category_to_domain, filters, pagination)


class AccountService:
    """Service for managing ledger accounts."""

    def __init__(self, db: Database, delete_guard: str = ANY_ENTRY):
        """Initialize account service.

        Args:
            db: Database instance
            delete_guard: Deletion policy, "any_entry" refuses once any entry was
                posted; "zero_balance" also requires a zero cached balance

        Raises:
            ValidationError: If the policy is unknown
        """
        if delete_guard not in DELETE_GUARDS:
            raise ValidationError(
                f"Unknown account delete guard '{delete_guard}', "
                f"expected one of {', '.join(DELETE_GUARDS)}"
            )
        self.db = db
        self.delete_guard = delete_guard

    def create_account(
        self,
        name: str,
        category_id: int,
        cost_center_id: int,
        code: Optional[int] = None,
    ) -> int:
        """Create a new account with a zero balance.

        Args:
            name: Account name
            category_id: Category the account rolls up into
            cost_center_id: Cost center the account rolls up into
            code: Optional account number from the chart of accounts

        Returns:
            Account ID

        Raises:
            NotFoundError: If the category or cost center does not exist
            ConflictError: If the account name already exists
            ValidationError: If the name is blank or the code negative
        """
        name = require_text(name, "Name")
        if code is not None and code < 0:
            raise ValidationError(f"Account code must not be negative, got {code}")

        def work(tx: Transaction) -> int:
            tx.require(Category, category_id, category_not_found(category_id))
            tx.require(CostCenter, cost_center_id, cost_center_not_found(cost_center_id))
            _check_unique_name(tx, Account, "account", name)
            account = tx.insert(
                Account,
                name=name,
                code=code,
                category_id=category_id,
                cost_center_id=cost_center_id,
            )
            return account.id

        return self.db.run_in_transaction(work)

    def get_account(self, account_id: int) -> Optional[AccountEntity]:
        """Get account by ID, or None if not found."""

        def work(tx: Transaction) -> Optional[AccountEntity]:
            account = tx.get(Account, account_id)
            return account_to_domain(account) if account is not None else None

        return self.db.run_in_transaction(work, readonly=True)

    def update_account(
        self,
        account_id: int,
        name: Optional[str] = None,
        code: Optional[int] = None,
        category_id: Optional[int] = None,
        cost_center_id: Optional[int] = None,
    ) -> AccountEntity:
        """Update account fields. Fields left as None are not changed.

        Moving an account to another category or cost center moves its whole
        balance with it; the cached balance itself never changes here.

        Raises:
            NotFoundError: If the account, category or cost center does not exist
            ConflictError: If the new name is taken
        """
        changes: dict[str, Any] = {}
        if name is not None:
            changes["name"] = require_text(name, "Name")
        if code is not None:
            if code < 0:
                raise ValidationError(f"Account code must not be negative, got {code}")
            changes["code"] = code
        if category_id is not None:
            changes["category_id"] = category_id
        if cost_center_id is not None:
            changes["cost_center_id"] = cost_center_id

        def work(tx: Transaction) -> AccountEntity:
            account = tx.require(Account, account_id, account_not_found(account_id))
            if "name" in changes:
                _check_unique_name(tx, Account, "account", changes["name"], exclude_id=account_id)
            if category_id is not None:
                tx.require(Category, category_id, category_not_found(category_id))
            if cost_center_id is not None:
                tx.require(CostCenter, cost_center_id, cost_center_not_found(cost_center_id))
            return account_to_domain(tx.update(account, **changes))

        return self.db.run_in_transaction(work)

    def delete_account(self, account_id: int) -> None:
        """Delete an account no entry was ever posted to.

        Entries are never deleted, so an account stays locked once used,
        whatever its current balance. The "zero_balance" guard also refuses
        while the cached balance is non-zero, which catches a drifted cache.

        Raises:
            NotFoundError: If the account does not exist
            ReferentialConflict: If entries reference the account, or the
                balance is non-zero under the "zero_balance" guard
        """

        def work(tx: Transaction) -> None:
            account = tx.require(Account, account_id, account_not_found(account_id))
            if self.delete_guard == ZERO_BALANCE and account.balance:
                raise ReferentialConflict(
                    f"Cannot delete account {account_id}: its balance is {account.balance}"
                )
            entries = tx.count(Entry, Entry.account_id == account_id)
            if entries:
                raise ReferentialConflict(delete_blocked("account", account_id, {"entry": entries}))
            tx.delete(account)

        self.db.run_in_transaction(work)

    def list_accounts(
        self,
        filters: Optional[dict[str, Any]] = None,
        pagination: Optional[Pagination] = None,
    ) -> Page[AccountEntity]:
        """List one page of accounts."""
        return list_rows(self.db, Account, account_to_domain, filters, pagination)
