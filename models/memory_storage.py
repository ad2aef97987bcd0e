"""
In-memory credential and refresh-session stores.

Each store owns its maps and a single lock; nothing outside the store mutates
them. The protocols describe what AuthService needs, so a persistent backend
can replace either store without touching the service.
"""
from __future__ import annotations

import logging
import threading
from datetime import timedelta
from typing import Dict, FrozenSet, Protocol, Set, Tuple

from argon2 import PasswordHasher

from models.refresh_session import RefreshSession
from models.user import User
from utils.outcomes import Failure, FailureKind, Ok, Outcome
from utils.security import (
    Clock,
    generate_refresh_token,
    hash_password,
    now_ms,
    verify_password,
)
from utils.token_codec import ttl_ms

logger = logging.getLogger(__name__)

INVALID_REFRESH_TOKEN = "Invalid refresh token"
EXPIRED_REFRESH_TOKEN = "Refresh token expired"

# Upper bound on regenerating a colliding refresh token before giving up.
MAX_TOKEN_ATTEMPTS = 5


class CredentialStore(Protocol):
    def register(self, email: str, password: str) -> Outcome[User]: ...

    def authenticate(self, email: str, password: str) -> Outcome[User]: ...

    def find_by_id(self, user_id: str) -> Outcome[User]: ...

    def find_by_email(self, email: str) -> Outcome[User]: ...


class RefreshSessionStore(Protocol):
    def issue(self, owner_user_id: str, ttl: timedelta) -> RefreshSession: ...

    def validate(self, token: str) -> Outcome[RefreshSession]: ...

    def rotate(self, old_token: str, ttl: timedelta) -> Outcome[Tuple[RefreshSession, str]]: ...

    def revoke(self, token: str) -> None: ...

    def revoke_all(self, owner_user_id: str) -> int: ...

    def active_tokens(self, owner_user_id: str) -> FrozenSet[str]: ...


class MemoryCredentialStore:
    """Users keyed by email, with a secondary index by id."""

    def __init__(self, hasher: PasswordHasher | None = None):
        self._hasher = hasher
        self._lock = threading.Lock()
        self._by_email: Dict[str, User] = {}
        self._by_id: Dict[str, User] = {}
        # Verified against for unknown emails so both failure paths hash once.
        self._dummy_hash = hash_password("not-a-real-password", self._hasher)

    def register(self, email: str, password: str) -> Outcome[User]:
        # Hash outside the lock; argon2 is deliberately slow.
        password_hash = hash_password(password, self._hasher)
        with self._lock:
            if email in self._by_email:
                return Failure(FailureKind.CONFLICT, "email already registered")
            user = User(email=email, password_hash=password_hash)
            self._by_email[email] = user
            self._by_id[user.id] = user
        return Ok(user)

    def authenticate(self, email: str, password: str) -> Outcome[User]:
        with self._lock:
            user = self._by_email.get(email)
        stored = user.password_hash if user else self._dummy_hash
        matches = verify_password(password, stored, self._hasher)
        if user is None or not matches:
            return Failure(FailureKind.UNAUTHORIZED, "invalid credentials")
        return Ok(user)

    def find_by_id(self, user_id: str) -> Outcome[User]:
        with self._lock:
            user = self._by_id.get(user_id)
        if user is None:
            return Failure(FailureKind.NOT_FOUND, "user not found")
        return Ok(user)

    def find_by_email(self, email: str) -> Outcome[User]:
        with self._lock:
            user = self._by_email.get(email)
        if user is None:
            return Failure(FailureKind.NOT_FOUND, "user not found")
        return Ok(user)

    def count(self) -> int:
        with self._lock:
            return len(self._by_email)


class MemoryRefreshSessionStore:
    """
    Refresh sessions keyed by token, plus an owner index (user id -> tokens).
    A record in the map is always active: rotation, revocation and lazy expiry
    all delete it, so a replayed token is indistinguishable from an unknown one.
    """

    def __init__(self, clock: Clock = now_ms):
        self._clock = clock
        self._lock = threading.Lock()
        self._sessions: Dict[str, RefreshSession] = {}
        self._by_owner: Dict[str, Set[str]] = {}

    # The _locked helpers assume the caller holds self._lock.
    def _issue_locked(self, owner_user_id: str, ttl: timedelta) -> RefreshSession:
        for _ in range(MAX_TOKEN_ATTEMPTS):
            token = generate_refresh_token()
            if token not in self._sessions:
                break
            logger.warning("refresh token collision, regenerating")
        else:
            raise RuntimeError("could not generate a unique refresh token")
        now = self._clock()
        session = RefreshSession(
            token=token,
            owner_user_id=owner_user_id,
            created_at=now,
            expires_at=now + ttl_ms(ttl),
        )
        self._sessions[token] = session
        self._by_owner.setdefault(owner_user_id, set()).add(token)
        return session

    def _delete_locked(self, token: str) -> RefreshSession | None:
        session = self._sessions.pop(token, None)
        if session is None:
            return None
        owned = self._by_owner.get(session.owner_user_id)
        if owned is not None:
            owned.discard(token)
            if not owned:
                del self._by_owner[session.owner_user_id]
        return session

    def _validate_locked(self, token: str) -> Outcome[RefreshSession]:
        session = self._sessions.get(token)
        if session is None:
            return Failure(FailureKind.UNAUTHORIZED, INVALID_REFRESH_TOKEN)
        if session.is_expired(self._clock()):
            self._delete_locked(token)
            return Failure(FailureKind.UNAUTHORIZED, EXPIRED_REFRESH_TOKEN)
        return Ok(session)

    def issue(self, owner_user_id: str, ttl: timedelta) -> RefreshSession:
        with self._lock:
            return self._issue_locked(owner_user_id, ttl)

    def validate(self, token: str) -> Outcome[RefreshSession]:
        with self._lock:
            return self._validate_locked(token)

    def rotate(self, old_token: str, ttl: timedelta) -> Outcome[Tuple[RefreshSession, str]]:
        """Validate, delete and reissue as one step; concurrent rotations of a token get one winner."""
        with self._lock:
            outcome = self._validate_locked(old_token)
            if isinstance(outcome, Failure):
                return outcome
            owner = outcome.value.owner_user_id
            self._delete_locked(old_token)
            return Ok((self._issue_locked(owner, ttl), owner))

    def revoke(self, token: str) -> None:
        with self._lock:
            self._delete_locked(token)

    def revoke_all(self, owner_user_id: str) -> int:
        with self._lock:
            tokens = list(self._by_owner.get(owner_user_id, ()))
            for token in tokens:
                self._delete_locked(token)
        return len(tokens)

    def active_tokens(self, owner_user_id: str) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._by_owner.get(owner_user_id, ()))

    def count(self) -> int:
        with self._lock:
            return len(self._sessions)
