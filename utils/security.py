"""
security helpers:
- Argon2 password hashing via argon2-cffi
- random opaque tokens for refresh sessions and password resets
- millisecond wall clock shared by the codec and the stores
"""
from __future__ import annotations

import secrets
import time
import uuid
from typing import Callable

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

Clock = Callable[[], int]

ph = PasswordHasher()


def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


def hash_password(password: str, hasher: PasswordHasher | None = None) -> str:
    """Hash a plaintext password using Argon2
    """
    return (hasher or ph).hash(password)


def verify_password(password: str, password_hash: str, hasher: PasswordHasher | None = None) -> bool:
    """ Verify a plaintext password using argon2
    """
    try:
        return (hasher or ph).verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def generate_user_id() -> str:
    return str(uuid.uuid4())


def generate_refresh_token() -> str:
    """40 random bytes, hex encoded (320 bits)."""
    return secrets.token_hex(40)


def generate_reset_token() -> str:
    return secrets.token_hex(32)
