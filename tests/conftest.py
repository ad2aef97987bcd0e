import sys
import time
from datetime import timedelta
from pathlib import Path

import pytest
from argon2 import PasswordHasher

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from api import create_app  # noqa: E402
from api.config import TestingConfig  # noqa: E402
from models import MemoryCredentialStore, MemoryRefreshSessionStore  # noqa: E402
from services import AuthService  # noqa: E402

SECRET = TestingConfig.JWT_SECRET


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start_ms: int | None = None):
        self.now = start_ms if start_ms is not None else int(time.time() * 1000)

    def __call__(self) -> int:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += int(delta / timedelta(milliseconds=1))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def hasher():
    """Cheap argon2 parameters so tests don't spend seconds hashing."""
    return PasswordHasher(time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture
def credential_store(hasher):
    return MemoryCredentialStore(hasher=hasher)


@pytest.fixture
def session_store(clock):
    return MemoryRefreshSessionStore(clock=clock)


@pytest.fixture
def auth_service(credential_store, session_store, clock):
    return AuthService(credential_store, session_store, SECRET, clock=clock)


@pytest.fixture
def app(auth_service, clock):
    return create_app("testing", auth_service=auth_service, clock=clock)


@pytest.fixture
def client(app):
    return app.test_client()
