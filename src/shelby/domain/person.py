"""Person and group domain services."""

from datetime import date
from typing import Any, Optional

from shelby.database.base import Database, Transaction
from shelby.database.mappers import group_to_domain, person_to_domain
from shelby.database.models import Document, Group, Membership, Person, User
from shelby.domain.entities import Group as GroupEntity, Person as PersonEntity
from shelby.domain.errors import (
    ReferentialConflict,
    ValidationError,
    delete_blocked,
    group_not_found,
    person_not_found,
)
from shelby.domain.listing import list_rows
from shelby.utils.pagination import Page, Pagination


def require_text(value: Optional[str], field: str) -> str:
    """Strip a required text field, rejecting blank values."""
    if value is None or not value.strip():
        raise ValidationError(f"{field} is required")
    return value.strip()


def _check_email(email: Optional[str]) -> Optional[str]:
    if email is None:
        return None
    email = email.strip()
    if not email:
        return None
    if "@" not in email or email.startswith("@") or email.endswith("@"):
        raise ValidationError(f"Invalid email address '{email}'")
    return email


class PersonService:
    """Service for managing persons."""

    def __init__(self, db: Database):
        """Initialize person service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_person(
        self,
        name: str,
        address: str = "",
        email: Optional[str] = None,
        birthday: Optional[date] = None,
        comment: Optional[str] = None,
    ) -> int:
        """Create a person.

        Returns:
            Person ID

        Raises:
            ValidationError: If the name is blank or the email is malformed
        """
        values = {
            "name": require_text(name, "Name"),
            "address": (address or "").strip(),
            "email": _check_email(email),
            "birthday": birthday,
            "comment": comment,
        }
        return self.db.run_in_transaction(lambda tx: tx.insert(Person, **values).id)

    def get_person(self, person_id: int) -> Optional[PersonEntity]:
        """Get person by ID, or None if not found."""

        def work(tx: Transaction) -> Optional[PersonEntity]:
            person = tx.get(Person, person_id)
            return person_to_domain(person) if person is not None else None

        return self.db.run_in_transaction(work, readonly=True)

    def update_person(
        self,
        person_id: int,
        name: Optional[str] = None,
        address: Optional[str] = None,
        email: Optional[str] = None,
        birthday: Optional[date] = None,
        comment: Optional[str] = None,
    ) -> PersonEntity:
        """Update person fields. Fields left as None are not changed.

        Raises:
            NotFoundError: If the person does not exist
            ValidationError: If a new value is invalid
        """
        changes: dict[str, Any] = {}
        if name is not None:
            changes["name"] = require_text(name, "Name")
        if address is not None:
            changes["address"] = address.strip()
        if email is not None:
            changes["email"] = _check_email(email)
        if birthday is not None:
            changes["birthday"] = birthday
        if comment is not None:
            changes["comment"] = comment

        def work(tx: Transaction) -> PersonEntity:
            person = tx.require(Person, person_id, person_not_found(person_id))
            return person_to_domain(tx.update(person, **changes))

        return self.db.run_in_transaction(work)

    def delete_person(self, person_id: int) -> None:
        """Delete a person nothing refers to.

        Raises:
            NotFoundError: If the person does not exist
            ReferentialConflict: If memberships, documents or users reference the person
        """

        def work(tx: Transaction) -> None:
            person = tx.require(Person, person_id, person_not_found(person_id))
            dependents = {
                "membership": tx.count(Membership, Membership.person_id == person_id),
                "document": tx.count(
                    Document,
                    (Document.from_person_id == person_id) | (Document.to_person_id == person_id),
                ),
                "user": tx.count(User, User.person_id == person_id),
            }
            if any(dependents.values()):
                raise ReferentialConflict(delete_blocked("person", person_id, dependents))
            tx.delete(person)

        self.db.run_in_transaction(work)

    def list_persons(
        self,
        filters: Optional[dict[str, Any]] = None,
        pagination: Optional[Pagination] = None,
    ) -> Page[PersonEntity]:
        """List one page of persons."""
        return list_rows(self.db, Person, person_to_domain, filters, pagination)


class GroupService:
    """Service for managing groups."""

    def __init__(self, db: Database):
        """Initialize group service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_group(self, description: str) -> int:
        """Create a group. Returns group ID."""
        description = require_text(description, "Description")
        return self.db.run_in_transaction(
            lambda tx: tx.insert(Group, description=description).id
        )

    def get_group(self, group_id: int) -> Optional[GroupEntity]:
        """Get group by ID, or None if not found."""

        def work(tx: Transaction) -> Optional[GroupEntity]:
            group = tx.get(Group, group_id)
            return group_to_domain(group) if group is not None else None

        return self.db.run_in_transaction(work, readonly=True)

    def rename_group(self, group_id: int, description: str) -> GroupEntity:
        """Change a group's description."""
        description = require_text(description, "Description")

        def work(tx: Transaction) -> GroupEntity:
            group = tx.require(Group, group_id, group_not_found(group_id))
            return group_to_domain(tx.update(group, description=description))

        return self.db.run_in_transaction(work)

    def delete_group(self, group_id: int) -> None:
        """Delete a group without members.

        Raises:
            NotFoundError: If the group does not exist
            ReferentialConflict: If memberships reference the group
        """

        def work(tx: Transaction) -> None:
            group = tx.require(Group, group_id, group_not_found(group_id))
            members = tx.count(Membership, Membership.group_id == group_id)
            if members:
                raise ReferentialConflict(
                    delete_blocked("group", group_id, {"membership": members})
                )
            tx.delete(group)

        self.db.run_in_transaction(work)

    def list_groups(
        self,
        filters: Optional[dict[str, Any]] = None,
        pagination: Optional[Pagination] = None,
    ) -> Page[GroupEntity]:
        """List one page of groups."""
        return list_rows(self.db, Group, group_to_domain, filters, pagination)
