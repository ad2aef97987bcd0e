"""Records and in-memory stores backing the auth service."""
from models.memory_storage import (
    CredentialStore,
    MemoryCredentialStore,
    MemoryRefreshSessionStore,
    RefreshSessionStore,
)
from models.refresh_session import RefreshSession
from models.user import User

__all__ = [
    "CredentialStore",
    "MemoryCredentialStore",
    "MemoryRefreshSessionStore",
    "RefreshSessionStore",
    "RefreshSession",
    "User",
]
