"""
User record owned by the credential store.
Fields:
- id (uuid4 string), immutable
- email, unique and case-sensitive as provided
- password_hash (argon2 encoded), never serialized
"""
from __future__ import annotations

from dataclasses import dataclass, field

from utils.security import generate_user_id


@dataclass
class User:
    email: str
    password_hash: str = field(repr=False)
    id: str = field(default_factory=generate_user_id)

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

    def to_dict(self) -> dict:
        """Public view of the user; the hash never leaves the store."""
        return {"id": self.id, "email": self.email}
