"""Password hashing with salted PBKDF2-SHA256."""

import hashlib
import hmac
import secrets

ALGORITHM = "pbkdf2_sha256"
ITERATIONS = 100_000


def hash_password(password: str, iterations: int = ITERATIONS) -> str:
    """Hash a password as 'pbkdf2_sha256$<iterations>$<salt>$<digest>'."""
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("ascii"), iterations
    ).hex()
    return f"{ALGORITHM}${iterations}${salt}${digest}"


def verify_password(password: str, stored_hash: str) -> bool:
    """Check a password against a stored hash. Malformed hashes never match."""
    try:
        algorithm, iterations, salt, expected = stored_hash.split("$", 3)
        rounds = int(iterations)
    except ValueError:
        return False
    if algorithm != ALGORITHM or rounds < 1:
        return False
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("ascii"), rounds
    ).hex()
    return hmac.compare_digest(digest, expected)
