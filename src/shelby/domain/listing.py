"""Uniform, entity-agnostic list operation."""

from typing import Any, Callable, Optional

from shelby.database.base import Database, Transaction
from shelby.database import mappers, models
from shelby.domain.errors import ValidationError
from shelby.utils.pagination import Page, Pagination

LISTABLE = {
    "persons": (models.Person, mappers.person_to_domain),
    "groups": (models.Group, mappers.group_to_domain),
    "memberships": (models.Membership, mappers.membership_to_domain),
    "documents": (models.Document, mappers.document_to_domain),
    "cost_centers": (models.CostCenter, mappers.cost_center_to_domain),
    "categories": (models.Category, mappers.category_to_domain),
    "accounts": (models.Account, mappers.account_to_domain),
    "entries": (models.Entry, mappers.entry_to_domain),
    "users": (models.User, mappers.user_to_domain),
}


def list_rows(
    db: Database,
    model: type,
    to_domain: Callable[[Any], Any],
    filters: Optional[dict[str, Any]] = None,
    pagination: Optional[Pagination] = None,
    criteria: tuple = (),
) -> Page:
    """Select one page of a model and convert it inside the same transaction."""

    def work(tx: Transaction) -> Page:
        return tx.select(model, filters, pagination, criteria).map(to_domain)

    return db.run_in_transaction(work, readonly=True)


class ListingService:
    """List any entity kind by name, for generic table views."""

    def __init__(self, db: Database):
        self.db = db

    @staticmethod
    def kinds() -> list[str]:
        return sorted(LISTABLE)

    @staticmethod
    def sortable_columns(kind: str) -> tuple[str, ...]:
        model, _ = ListingService._lookup(kind)
        return model.__sortable__

    @staticmethod
    def _lookup(kind: str):
        try:
            return LISTABLE[kind]
        except KeyError:
            raise ValidationError(
                f"Unknown entity kind '{kind}'. Known kinds: {', '.join(sorted(LISTABLE))}"
            )

    def list(
        self,
        kind: str,
        filters: Optional[dict[str, Any]] = None,
        pagination: Optional[Pagination] = None,
    ) -> Page:
        """List one page of an entity kind.

        Args:
            kind: Entity kind, e.g. "persons" or "entries"
            filters: Equality filters on the kind's filterable columns
            pagination: Window and sort

        Returns:
            Page of domain entities

        Raises:
            ValidationError: For an unknown kind, filter or sort column
        """
        model, to_domain = self._lookup(kind)
        return list_rows(self.db, model, to_domain, filters, pagination)
