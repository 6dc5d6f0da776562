"""Password hashing and verification using bcrypt."""

import bcrypt

# bcrypt only looks at the first 72 bytes and newer releases reject longer input.
_BCRYPT_MAX_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Hash a plain-text password, returning the bcrypt hash as text."""
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Return True if ``plain_password`` matches ``hashed_password``."""
    return bcrypt.checkpw(_encode(plain_password), hashed_password.encode("utf-8"))
