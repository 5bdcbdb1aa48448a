"""User domain service.

Users are created by an administrator. The service stores password hashes
and can check credentials, but deciding who is logged in is left to the
caller.
"""

import logging
from typing import Any, Optional

from shelby.database.base import Database, Transaction
from shelby.database.mappers import user_to_domain
from shelby.database.models import Person, User
from shelby.domain.entities import User as UserEntity
from shelby.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    person_not_found,
    user_not_found,
)
from shelby.domain.listing import list_rows
from shelby.domain.person import require_text
from shelby.utils.pagination import Page, Pagination
from shelby.utils.passwords import hash_password, verify_password

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def _check_password(password: str) -> str:
    if password is None or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )
    return password


class UserService:
    """Service for managing login identities."""

    def __init__(self, db: Database):
        """Initialize user service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_user(
        self, username: str, password: str, person_id: Optional[int] = None
    ) -> int:
        """Create an active user.

        Args:
            username: Unique login name
            password: Plain password, hashed before it is stored
            person_id: Optional person the user belongs to

        Returns:
            User ID

        Raises:
            ValidationError: If the username is blank or the password too short
            ConflictError: If the username is taken
            NotFoundError: If the person does not exist
        """
        username = require_text(username, "Username")
        password_hash = hash_password(_check_password(password))

        def work(tx: Transaction) -> int:
            if tx.exists(User, User.username == username):
                raise ConflictError(f"User '{username}' already exists")
            if person_id is not None:
                tx.require(Person, person_id, person_not_found(person_id))
            user = tx.insert(
                User,
                username=username,
                password_hash=password_hash,
                active=True,
                person_id=person_id,
            )
            return user.id

        user_id = self.db.run_in_transaction(work)
        logger.info("Created user %d '%s'", user_id, username)
        return user_id

    def get_user(self, user_id: int) -> Optional[UserEntity]:
        """Get user by ID, or None if not found."""

        def work(tx: Transaction) -> Optional[UserEntity]:
            user = tx.get(User, user_id)
            return user_to_domain(user) if user is not None else None

        return self.db.run_in_transaction(work, readonly=True)

    def get_user_by_username(self, username: str) -> Optional[UserEntity]:
        """Get user by username, or None if not found."""

        def work(tx: Transaction) -> Optional[UserEntity]:
            page = tx.select(User, {"username": username})
            return user_to_domain(page.rows[0]) if page.rows else None

        return self.db.run_in_transaction(work, readonly=True)

    def set_password(self, user_id: int, password: str) -> None:
        """Replace a user's password."""
        password_hash = hash_password(_check_password(password))

        def work(tx: Transaction) -> None:
            user = tx.require(User, user_id, user_not_found(user_id))
            tx.update(user, password_hash=password_hash)

        self.db.run_in_transaction(work)
        logger.info("Changed password of user %d", user_id)

    def set_active(self, user_id: int, active: bool) -> UserEntity:
        """Enable or disable a user."""

        def work(tx: Transaction) -> UserEntity:
            user = tx.require(User, user_id, user_not_found(user_id))
            return user_to_domain(tx.update(user, active=active))

        return self.db.run_in_transaction(work)

    def check_credentials(self, username: str, password: str) -> UserEntity:
        """Return the active user matching username and password.

        Raises:
            NotFoundError: If no active user matches; the message does not tell
                which part was wrong
        """

        def work(tx: Transaction) -> tuple[Optional[UserEntity], Optional[str]]:
            page = tx.select(User, {"username": username})
            if not page.rows:
                return None, None
            return user_to_domain(page.rows[0]), page.rows[0].password_hash

        user, password_hash = self.db.run_in_transaction(work, readonly=True)
        if user is None or not user.active or not verify_password(password, password_hash):
            raise NotFoundError(user_not_found(username))
        return user

    def list_users(
        self,
        filters: Optional[dict[str, Any]] = None,
        pagination: Optional[Pagination] = None,
    ) -> Page[UserEntity]:
        """List one page of users."""
        return list_rows(self.db, User, user_to_domain, filters, pagination)
