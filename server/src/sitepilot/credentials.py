"""
Password hashing and verification.
"""
from __future__ import annotations

import bcrypt

from .errors import ValidationError

BCRYPT_ROUNDS = 10
# bcrypt only looks at the first 72 bytes of its input
BCRYPT_MAX_BYTES = 72


def _encode(raw_password: str) -> bytes:
    return raw_password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(raw_password: str) -> str:
    if not raw_password:
        raise ValidationError("Password must not be empty")
    return bcrypt.hashpw(_encode(raw_password), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(raw_password: str, password_hash: str) -> bool:
    if not raw_password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(_encode(raw_password), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash
        return False


__all__ = ["hash_password", "verify_password"]
