"""Tests for user administration and password hashing."""

import pytest

from shelby.database.models import User
from shelby.domain.errors import ConflictError, NotFoundError, ValidationError
from shelby.utils.passwords import hash_password, verify_password


def test_create_user(user_service, sample_person):
    user_id = user_service.create_user("alice", "long enough", person_id=sample_person)

    user = user_service.get_user(user_id)
    assert user.username == "alice"
    assert user.active
    assert user.person_id == sample_person
    assert user_service.get_user_by_username("alice").id == user_id


def test_password_is_not_stored_in_clear(user_service, temp_db, sample_user):
    stored = temp_db.run_in_transaction(
        lambda tx: tx.get(User, sample_user).password_hash, readonly=True
    )
    assert "correct horse" not in stored
    assert stored.startswith("pbkdf2_sha256$")


def test_duplicate_username(user_service, sample_user):
    with pytest.raises(ConflictError, match="already exists"):
        user_service.create_user("treasurer", "another password")


def test_short_password_rejected(user_service):
    with pytest.raises(ValidationError, match="at least 8"):
        user_service.create_user("bob", "short")


def test_unknown_person_rejected(user_service):
    with pytest.raises(NotFoundError, match="Person 5"):
        user_service.create_user("bob", "long enough", person_id=5)


def test_check_credentials(user_service, sample_user):
    assert user_service.check_credentials("treasurer", "correct horse battery").id == sample_user

    with pytest.raises(NotFoundError):
        user_service.check_credentials("treasurer", "wrong password")
    with pytest.raises(NotFoundError):
        user_service.check_credentials("nobody", "correct horse battery")


def test_disabled_user_cannot_log_in(user_service, sample_user):
    user_service.set_active(sample_user, False)

    assert not user_service.get_user(sample_user).active
    with pytest.raises(NotFoundError):
        user_service.check_credentials("treasurer", "correct horse battery")


def test_set_password(user_service, sample_user):
    user_service.set_password(sample_user, "new secret phrase")

    assert user_service.check_credentials("treasurer", "new secret phrase").id == sample_user
    with pytest.raises(NotFoundError):
        user_service.check_credentials("treasurer", "correct horse battery")


def test_set_password_unknown_user(user_service):
    with pytest.raises(NotFoundError, match="User 9 not found"):
        user_service.set_password(9, "long enough")


def test_hashes_are_salted():
    first = hash_password("same password", iterations=1000)
    second = hash_password("same password", iterations=1000)

    assert first != second
    assert verify_password("same password", first)
    assert verify_password("same password", second)


def test_malformed_hash_never_matches():
    assert not verify_password("anything", "plaintext")
    assert not verify_password("anything", "md5$1$salt$digest")
    assert not verify_password("anything", "pbkdf2_sha256$0$salt$digest")
    assert not verify_password("anything", "pbkdf2_sha256$-5$salt$digest")
