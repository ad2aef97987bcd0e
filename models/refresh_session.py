"""
RefreshSession: one server-tracked refresh token.
Fields:
- token (primary key), opaque bearer capability
- owner_user_id, lookup key into the credential store
- created_at, expires_at, milliseconds since the epoch
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RefreshSession:
    token: str
    owner_user_id: str
    created_at: int
    expires_at: int

    def is_expired(self, now: int) -> bool:
        return self.expires_at < now

    def __repr__(self):
        return f"<RefreshSession owner={self.owner_user_id} expires_at={self.expires_at}>"
