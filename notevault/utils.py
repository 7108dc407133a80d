import base64
import hashlib
import hmac
import secrets
import uuid
from datetime import datetime, UTC

PASSWORD_HASH_ALGORITHM = "pbkdf2_sha256"


def make_id(prefix: str) -> str:
    """Generate a unique ID with a given prefix."""
    return f"{prefix}_{uuid.uuid4()}"


def time_now() -> datetime:
    """Return the current UTC time, keeping microseconds so updates order correctly."""
    return datetime.now(UTC)


def b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def b64url_decode(text: str) -> bytes:
    padded = text + ("=" * (-len(text) % 4))
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def hash_password(password: str, iterations: int) -> str:
    """
    Hash a password with a random salt using PBKDF2-SHA256.

    The result is self-describing (``algorithm$iterations$salt$digest``) so the
    iteration count can be raised later without invalidating stored hashes.
    """
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return f"{PASSWORD_HASH_ALGORITHM}${iterations}${b64url_encode(salt)}${b64url_encode(digest)}"


def verify_password(password: str, password_hash: str) -> bool:
    """Compare a plaintext password against a stored hash. Malformed hashes never match."""
    try:
        algorithm, iterations_raw, salt_raw, digest_raw = password_hash.split("$", 3)
        iterations = int(iterations_raw)
        salt = b64url_decode(salt_raw)
        expected = b64url_decode(digest_raw)
    except (AttributeError, ValueError):
        return False
    if algorithm != PASSWORD_HASH_ALGORITHM or iterations <= 0:
        return False
    actual = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return hmac.compare_digest(actual, expected)
