"""Membership domain service."""

from datetime import date
from typing import Any, Optional

from shelby.database.base import Database, Transaction
from shelby.database.mappers import membership_to_domain
from shelby.database.models import Group, Membership, Person
from shelby.domain.entities import Membership as MembershipEntity
from shelby.domain.errors import (
    ConflictError,
    NotFoundError,
    duplicate_membership,
    group_not_found,
    membership_not_found,
    person_not_found,
)
from shelby.domain.listing import list_rows
from shelby.utils.pagination import Page, Pagination


class MembershipService:
    """Service for adding persons to groups and removing them again."""

    def __init__(self, db: Database):
        """Initialize membership service.

        Args:
            db: Database instance
        """
        self.db = db

    def add(
        self,
        person_id: int,
        group_id: int,
        comment: Optional[str] = None,
        updated: Optional[date] = None,
    ) -> int:
        """Add a person to a group.

        Args:
            person_id: Person ID
            group_id: Group ID
            comment: Optional comment
            updated: Date of the membership change, defaults to today

        Returns:
            Membership ID

        Raises:
            NotFoundError: If the person or group does not exist
            ConflictError: If the person already is a member of the group
        """

        def work(tx: Transaction) -> int:
            tx.require(Person, person_id, person_not_found(person_id))
            tx.require(Group, group_id, group_not_found(group_id))
            if tx.exists(
                Membership, Membership.person_id == person_id, Membership.group_id == group_id
            ):
                raise ConflictError(duplicate_membership(person_id, group_id))
            membership = tx.insert(
                Membership,
                person_id=person_id,
                group_id=group_id,
                comment=comment,
                updated=updated or date.today(),
            )
            return membership.id

        return self.db.run_in_transaction(work)

    def remove(self, membership_id: int) -> None:
        """Remove one membership row. Person and group are untouched.

        Raises:
            NotFoundError: If the membership does not exist (e.g. removed twice)
        """

        def work(tx: Transaction) -> None:
            membership = tx.require(Membership, membership_id, membership_not_found(membership_id))
            tx.delete(membership)

        self.db.run_in_transaction(work)

    def get_membership(self, membership_id: int) -> Optional[MembershipEntity]:
        """Get membership by ID, or None if not found."""

        def work(tx: Transaction) -> Optional[MembershipEntity]:
            membership = tx.get(Membership, membership_id)
            return membership_to_domain(membership) if membership is not None else None

        return self.db.run_in_transaction(work, readonly=True)

    def find_membership(self, person_id: int, group_id: int) -> MembershipEntity:
        """Get the membership of a person in a group.

        Raises:
            NotFoundError: If the person is not a member of the group
        """

        def work(tx: Transaction) -> MembershipEntity:
            page = tx.select(Membership, {"person_id": person_id, "group_id": group_id})
            if not page.rows:
                raise NotFoundError(f"Person {person_id} is not a member of group {group_id}")
            return membership_to_domain(page.rows[0])

        return self.db.run_in_transaction(work, readonly=True)

    def list_memberships(
        self,
        person_id: Optional[int] = None,
        group_id: Optional[int] = None,
        pagination: Optional[Pagination] = None,
    ) -> Page[MembershipEntity]:
        """List memberships, optionally of one person or of one group."""
        filters: dict[str, Any] = {}
        if person_id is not None:
            filters["person_id"] = person_id
        if group_id is not None:
            filters["group_id"] = group_id
        return list_rows(self.db, Membership, membership_to_domain, filters, pagination)
