"""Ledger domain service.

Entries are posted against accounts and never changed afterwards. Each
account caches its balance, which is updated in the same transaction as the
entry insert, so category and cost center totals computed from the cached
balances always reconcile with the entry ledger.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func, select, type_coerce

from shelby.database.base import Database, Transaction
from shelby.database.mappers import entry_to_domain
from shelby.database.models import Account, Category, CostCenter, Document, Entry, User
from shelby.database.types import Money
from shelby.domain.entities import (
    AccountSummary,
    BalanceMismatch,
    Entry as EntryEntity,
)
from shelby.domain.errors import (
    ConflictError,
    InvalidAmount,
    UnknownAccount,
    ValidationError,
    account_not_found,
    category_not_found,
    cost_center_not_found,
    entry_not_found,
    user_not_found,
)
from shelby.domain.listing import list_rows
from shelby.storage.coordinator import ConsistencyCoordinator, add_reference
from shelby.utils.amount_parser import MAX_AMOUNT, to_amount
from shelby.utils.pagination import Page, Pagination

logger = logging.getLogger(__name__)

def _sum_of(column: Any) -> Any:
    # Money columns hold cents, so SUM stays an exact integer
    return type_coerce(func.coalesce(func.sum(column), 0), Money())


def _computed_balance() -> Any:
    return type_coerce(
        select(func.coalesce(func.sum(Entry.amount), 0))
        .where(Entry.account_id == Account.id)
        .correlate(Account)
        .scalar_subquery(),
        Money(),
    )


class LedgerService:
    """Service for posting entries and reading balances."""

    def __init__(self, db: Database, coordinator: Optional[ConsistencyCoordinator] = None):
        """Initialize ledger service.

        Args:
            db: Database instance
            coordinator: Needed only for posting entries with new evidence documents
        """
        self.db = db
        self.coordinator = coordinator

    def _insert_entry(
        self,
        tx: Transaction,
        account_id: int,
        amount: Decimal,
        description: str,
        entry_date: Optional[date],
        document_id: Optional[int],
        actor: Optional[int],
        reverses_id: Optional[int] = None,
    ) -> Entry:
        account = tx.get(Account, account_id)
        if account is None:
            raise UnknownAccount(account_not_found(account_id))
        if actor is not None:
            tx.require(User, actor, user_not_found(actor))
        balance = account.balance + amount
        if abs(balance) >= MAX_AMOUNT:
            raise InvalidAmount(
                f"Posting {amount} would take account {account_id} beyond the balance limit"
            )
        if document_id is not None:
            add_reference(tx, document_id)

        entry = tx.insert(
            Entry,
            account_id=account_id,
            date=entry_date or date.today(),
            amount=amount,
            description=description,
            document_id=document_id,
            reverses_id=reverses_id,
            created_by=actor,
        )
        tx.update(account, balance=balance)
        return entry

    def post(
        self,
        account_id: int,
        amount: Decimal | int | str,
        description: str = "",
        date: Optional[date] = None,
        document_id: Optional[int] = None,
        actor: Optional[int] = None,
    ) -> int:
        """Post an entry and update the account balance.

        Args:
            account_id: Account to post against
            amount: Signed amount with at most two fractional digits
            description: Entry text
            date: Booking date, defaults to today
            document_id: Optional evidence document already stored
            actor: ID of the authenticated user posting the entry

        Returns:
            Entry ID

        Raises:
            InvalidAmount: If the amount is zero, not finite, too large or has
                sub-cent digits, or the balance would exceed the storable range
            UnknownAccount: If the account does not exist
            NotFoundError: If the document or actor does not exist
        """
        amount = to_amount(amount)
        entry_id = self.db.run_in_transaction(
            lambda tx: self._insert_entry(
                tx, account_id, amount, description, date, document_id, actor
            ).id
        )
        logger.info("Posted entry %d of %s to account %d", entry_id, amount, account_id)
        return entry_id

    def post_with_document(
        self,
        account_id: int,
        amount: Decimal | int | str,
        description: str,
        payload: bytes,
        filename: str,
        mime_type: Optional[str] = None,
        date: Optional[date] = None,
        actor: Optional[int] = None,
        from_person_id: Optional[int] = None,
        to_person_id: Optional[int] = None,
    ) -> EntryEntity:
        """Store an evidence document and post an entry referencing it.

        Both commit together or not at all; if the posting fails the stored
        file is removed again.

        Returns:
            The posted entry, whose document_id names the new document
        """
        if self.coordinator is None:
            raise RuntimeError("LedgerService needs a coordinator to store documents")
        amount = to_amount(amount)

        def attach(tx: Transaction, document: Document) -> EntryEntity:
            entry = self._insert_entry(
                tx, account_id, amount, description, date, document.id, actor
            )
            return entry_to_domain(entry)

        entry = self.coordinator.create(
            payload,
            filename,
            mime_type,
            attach=attach,
            description=description,
            from_person_id=from_person_id,
            to_person_id=to_person_id,
            processed_by=actor,
        )
        logger.info(
            "Posted entry %d of %s to account %d with document %d",
            entry.id,
            amount,
            account_id,
            entry.document_id,
        )
        return entry

    def reverse(
        self,
        entry_id: int,
        date: Optional[date] = None,
        description: Optional[str] = None,
        actor: Optional[int] = None,
    ) -> int:
        """Post the negation of an entry.

        The original entry is not modified; it shows as reversed through the
        new entry's reverses_id.

        Returns:
            ID of the reversing entry

        Raises:
            NotFoundError: If the entry does not exist
            ConflictError: If the entry is already reversed or is itself a reversal
        """

        def work(tx: Transaction) -> int:
            original = tx.require(Entry, entry_id, entry_not_found(entry_id))
            if original.reverses_id is not None:
                raise ConflictError(
                    f"Entry {entry_id} reverses entry {original.reverses_id} and cannot be reversed"
                )
            if tx.exists(Entry, Entry.reverses_id == entry_id):
                raise ConflictError(f"Entry {entry_id} is already reversed")
            reversal = self._insert_entry(
                tx,
                original.account_id,
                -original.amount,
                description or f"Reversal of entry {entry_id}",
                date,
                None,
                actor,
                reverses_id=entry_id,
            )
            return reversal.id

        reversal_id = self.db.run_in_transaction(work)
        logger.info("Reversed entry %d with entry %d", entry_id, reversal_id)
        return reversal_id

    def get_entry(self, entry_id: int) -> Optional[EntryEntity]:
        """Get entry by ID, or None if not found."""

        def work(tx: Transaction) -> Optional[EntryEntity]:
            entry = tx.get(Entry, entry_id)
            return entry_to_domain(entry) if entry is not None else None

        return self.db.run_in_transaction(work, readonly=True)

    def list_entries(
        self,
        filters: Optional[dict[str, Any]] = None,
        pagination: Optional[Pagination] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Page[EntryEntity]:
        """List entries, optionally within a booking date range (inclusive)."""
        if start_date is not None and end_date is not None and start_date > end_date:
            raise ValidationError(f"Start date {start_date} is after end date {end_date}")
        criteria = []
        if start_date is not None:
            criteria.append(Entry.date >= start_date)
        if end_date is not None:
            criteria.append(Entry.date <= end_date)
        return list_rows(
            self.db, Entry, entry_to_domain, filters, pagination, tuple(criteria)
        )

    def balance(self, account_id: int) -> Decimal:
        """Get the cached balance of an account.

        Raises:
            UnknownAccount: If the account does not exist
        """

        def work(tx: Transaction) -> Decimal:
            account = tx.get(Account, account_id)
            if account is None:
                raise UnknownAccount(account_not_found(account_id))
            return account.balance

        return self.db.run_in_transaction(work, readonly=True)

    def category_total(self, category_id: int, cost_center_id: Optional[int] = None) -> Decimal:
        """Sum the balances of a category's accounts.

        Args:
            category_id: Category ID
            cost_center_id: Restrict the sum to accounts of this cost center

        Raises:
            NotFoundError: If the category or cost center does not exist
        """

        def work(tx: Transaction) -> Decimal:
            tx.require(Category, category_id, category_not_found(category_id))
            statement = select(_sum_of(Account.balance)).where(
                Account.category_id == category_id
            )
            if cost_center_id is not None:
                tx.require(CostCenter, cost_center_id, cost_center_not_found(cost_center_id))
                statement = statement.where(Account.cost_center_id == cost_center_id)
            return tx.scalar(statement)

        return self.db.run_in_transaction(work, readonly=True)

    def cost_center_total(self, cost_center_id: int) -> Decimal:
        """Sum the balances of a cost center's accounts.

        Raises:
            NotFoundError: If the cost center does not exist
        """

        def work(tx: Transaction) -> Decimal:
            tx.require(CostCenter, cost_center_id, cost_center_not_found(cost_center_id))
            return tx.scalar(
                select(_sum_of(Account.balance)).where(Account.cost_center_id == cost_center_id)
            )

        return self.db.run_in_transaction(work, readonly=True)

    def account_summary(self, cost_center_id: Optional[int] = None) -> list[AccountSummary]:
        """Balances of all accounts, ordered by cost center, category and account."""
        statement = (
            select(CostCenter.name, Category.name, Account.name, Account.id, Account.balance)
            .select_from(Account)
            .join(Account.cost_center)
            .join(Account.category)
            .order_by(CostCenter.name, Category.name, Account.name)
        )
        if cost_center_id is not None:
            statement = statement.where(Account.cost_center_id == cost_center_id)

        rows = self.db.run_in_transaction(lambda tx: tx.all(statement), readonly=True)
        return [
            AccountSummary(
                cost_center=cost_center,
                category=category,
                account=account,
                account_id=account_id,
                balance=balance,
            )
            for cost_center, category, account, account_id, balance in rows
        ]

    def verify_balances(self) -> list[BalanceMismatch]:
        """Recompute every account balance from its entries.

        Returns:
            Accounts whose cached balance differs; empty when consistent
        """
        rows = self.db.run_in_transaction(
            lambda tx: tx.all(select(Account.id, Account.balance, _computed_balance())),
            readonly=True,
        )
        mismatches = [
            BalanceMismatch(account_id=account_id, cached=cached, computed=computed)
            for account_id, cached, computed in rows
            if cached != computed
        ]
        for mismatch in mismatches:
            logger.critical(
                "Account %d caches balance %s but its entries sum to %s",
                mismatch.account_id,
                mismatch.cached,
                mismatch.computed,
            )
        return mismatches

    def rebuild_balances(self) -> list[BalanceMismatch]:
        """Overwrite cached balances with the sums of the entries.

        Returns:
            The corrections made
        """

        def work(tx: Transaction) -> list[BalanceMismatch]:
            corrections = []
            for account_id, cached, computed in tx.all(
                select(Account.id, Account.balance, _computed_balance())
            ):
                if cached == computed:
                    continue
                tx.update(tx.get(Account, account_id), balance=computed)
                corrections.append(
                    BalanceMismatch(account_id=account_id, cached=cached, computed=computed)
                )
            return corrections

        corrections = self.db.run_in_transaction(work)
        for correction in corrections:
            logger.warning(
                "Corrected balance of account %d from %s to %s",
                correction.account_id,
                correction.cached,
                correction.computed,
            )
        return corrections
