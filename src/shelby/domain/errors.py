"""Shared domain error messages and error types."""


class ShelbyError(Exception):
    """Base class for every error raised by the shelby core."""


class DomainError(ShelbyError, ValueError):
    """Base class for caller-fault errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Malformed or missing input."""


class InvalidAmount(ValidationError):
    """Ledger amount that is not finite, is zero, or has sub-cent digits."""


class NotFoundError(DomainError):
    """Requested entity does not exist."""


class UnknownAccount(NotFoundError):
    """Ledger posting against an account that does not exist."""


class ConflictError(DomainError):
    """Uniqueness violation or other state conflict."""


class ReferentialConflict(ConflictError):
    """Deletion blocked because other records still reference the target."""


class StorageIoError(ShelbyError):
    """Filesystem or embedded-store I/O failure."""


class DocumentFileMissing(StorageIoError):
    """A document file is not present in the document area."""


class BusyError(StorageIoError):
    """The embedded store stayed locked through every retry.

    The operation had no effect and may be retried by the caller.
    """

    retryable = True


class InternalConsistencyError(ShelbyError):
    """A check that should be impossible to fail has failed."""


def person_not_found(person_id: int) -> str:
    """Return message for missing person."""
    return f"Person {person_id} not found"


def group_not_found(group_id: int) -> str:
    """Return message for missing group."""
    return f"Group {group_id} not found"


def membership_not_found(membership_id: int) -> str:
    """Return message for missing membership."""
    return f"Membership {membership_id} not found"


def duplicate_membership(person_id: int, group_id: int) -> str:
    """Return message for a person already in a group."""
    return f"Person {person_id} is already a member of group {group_id}"


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def category_not_found(category_id: int) -> str:
    """Return message for missing category by ID."""
    return f"Category {category_id} not found"


def cost_center_not_found(cost_center_id: int) -> str:
    """Return message for missing cost center."""
    return f"Cost center {cost_center_id} not found"


def entry_not_found(entry_id: int) -> str:
    """Return message for missing ledger entry."""
    return f"Entry {entry_id} not found"


def document_not_found(document_id: int) -> str:
    """Return message for missing document."""
    return f"Document {document_id} not found"


def user_not_found(user: int | str) -> str:
    """Return message for missing user by ID or username."""
    if isinstance(user, int):
        return f"User {user} not found"
    return f"User '{user}' not found"


def _plural(count: int, noun: str) -> str:
    if count == 1:
        return f"{count} {noun}"
    if noun.endswith("y"):
        return f"{count} {noun[:-1]}ies"
    return f"{count} {noun}s"


def delete_blocked(kind: str, identifier: int, dependents: dict[str, int]) -> str:
    """Return message when a record still has dependent records.

    Args:
        kind: Human readable kind of the record ("account", "person", ...)
        identifier: Record ID
        dependents: Mapping of dependent noun to count; zero counts are skipped
    """
    parts = [_plural(count, noun) for noun, count in dependents.items() if count > 0]
    return (
        f"Cannot delete {kind} {identifier}: it has {', '.join(parts)}. "
        "Please reassign or delete them first."
    )
