"""
AuthService: the register/login/verify/refresh/logout/forgot-password use cases.

It is the only component that talks to more than one of the token codec, the
credential store and the refresh-session store. Store and codec failures come
back as Failure values; each use case maps them to a ServiceError through an
explicit table, and any kind missing from the table becomes an InternalError.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, FrozenSet, Optional, Tuple, Type, TypeVar

from models.memory_storage import CredentialStore, RefreshSessionStore
from models.user import User
from services.errors import (
    ConflictError,
    InternalError,
    ServiceError,
    TokenExpiredError,
    UnauthorizedError,
)
from utils import token_codec
from utils.outcomes import Failure, FailureKind, Outcome
from utils.security import Clock, generate_reset_token, now_ms

logger = logging.getLogger(__name__)

T = TypeVar("T")

ACCESS_TOKEN_TTL = timedelta(minutes=15)
REFRESH_TOKEN_TTL = timedelta(days=7)

# kind -> (error class, message); a None message reuses the failure's own text.
ErrorTable = Dict[FailureKind, Tuple[Type[ServiceError], Optional[str]]]

REGISTER_ERRORS: ErrorTable = {
    FailureKind.CONFLICT: (ConflictError, "User exists"),
}
LOGIN_ERRORS: ErrorTable = {
    FailureKind.UNAUTHORIZED: (UnauthorizedError, "Invalid credentials"),
}
ACCESS_ERRORS: ErrorTable = {
    FailureKind.EXPIRED: (TokenExpiredError, "Token expired"),
    FailureKind.SIGNATURE_INVALID: (UnauthorizedError, "Invalid token"),
    FailureKind.MALFORMED: (UnauthorizedError, "Invalid token"),
    # A deleted user's token must not reveal that the account is gone.
    FailureKind.NOT_FOUND: (UnauthorizedError, "Invalid token"),
}
REFRESH_ERRORS: ErrorTable = {
    FailureKind.UNAUTHORIZED: (UnauthorizedError, None),
}


@dataclass(frozen=True, slots=True)
class TokenPair:
    access_token: str
    refresh_token: str
    refresh_expires_at: int


def _unwrap(outcome: Outcome[T], table: ErrorTable) -> T:
    if not isinstance(outcome, Failure):
        return outcome.value
    mapped = table.get(outcome.kind)
    if mapped is None:
        logger.error("unmapped failure %s: %s", outcome.kind.value, outcome.message)
        raise InternalError("Internal server error")
    error_cls, message = mapped
    raise error_cls(message or outcome.message)


class AuthService:
    """Token lifecycle over injected stores."""

    def __init__(
        self,
        credentials: CredentialStore,
        sessions: RefreshSessionStore,
        secret: str | bytes,
        *,
        access_ttl: timedelta = ACCESS_TOKEN_TTL,
        refresh_ttl: timedelta = REFRESH_TOKEN_TTL,
        clock: Clock = now_ms,
    ) -> None:
        if not secret:
            raise ValueError("a signing secret is required")
        self.credentials = credentials
        self.sessions = sessions
        self._secret = secret
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self._clock = clock

    def _sign_access(self, user_id: str) -> str:
        return token_codec.sign({"userId": user_id}, self._secret, self.access_ttl, clock=self._clock)

    def register(self, email: str, password: str) -> User:
        user = _unwrap(self.credentials.register(email, password), REGISTER_ERRORS)
        logger.info("user registered id=%s", user.id)
        return user

    def login(self, email: str, password: str) -> TokenPair:
        outcome = self.credentials.authenticate(email, password)
        if isinstance(outcome, Failure):
            logger.info("login rejected")
        user = _unwrap(outcome, LOGIN_ERRORS)
        session = self.sessions.issue(user.id, self.refresh_ttl)
        logger.info("login ok user=%s", user.id)
        return TokenPair(
            access_token=self._sign_access(user.id),
            refresh_token=session.token,
            refresh_expires_at=session.expires_at,
        )

    def verify_access(self, token: str) -> User:
        """Resolve a bearer access token to a live user or raise UnauthorizedError."""
        claims = _unwrap(token_codec.verify(token, self._secret, clock=self._clock), ACCESS_ERRORS)
        user_id = claims.get("userId")
        if not isinstance(user_id, str):
            raise UnauthorizedError("Invalid token")
        return _unwrap(self.credentials.find_by_id(user_id), ACCESS_ERRORS)

    def refresh(self, refresh_token: str) -> TokenPair:
        """Rotate the refresh token and mint a new access token for its owner."""
        session, owner = _unwrap(self.sessions.rotate(refresh_token, self.refresh_ttl), REFRESH_ERRORS)
        logger.info("refresh token rotated user=%s", owner)
        return TokenPair(
            access_token=self._sign_access(owner),
            refresh_token=session.token,
            refresh_expires_at=session.expires_at,
        )

    def logout(self, refresh_token: str, *, everywhere: bool = False) -> None:
        """Revoke one refresh token, or every session of its owner. Unknown tokens are a no-op."""
        if not everywhere:
            self.sessions.revoke(refresh_token)
            return
        outcome = self.sessions.validate(refresh_token)
        if isinstance(outcome, Failure):
            return
        revoked = self.sessions.revoke_all(outcome.value.owner_user_id)
        logger.info("revoked %d sessions user=%s", revoked, outcome.value.owner_user_id)

    def forgot_password(self, email: str) -> str | None:
        """
        Return a fresh reset token when the email belongs to a user, else None.
        Callers must answer both cases identically.
        """
        outcome = self.credentials.find_by_email(email)
        if isinstance(outcome, Failure):
            return None
        logger.info("password reset requested user=%s", outcome.value.id)
        return generate_reset_token()

    def active_sessions(self, user_id: str) -> FrozenSet[str]:
        return self.sessions.active_tokens(user_id)
