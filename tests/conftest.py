"""Shared fixtures."""

from datetime import timedelta

import pytest

from slashclaw_auth import AgentSigner, AuthConfig, AuthServices, InMemoryStore, SQLiteStore
from slashclaw_auth.core.models import utcnow


class FakeClock:
    """Controllable clock for expiry tests."""

    def __init__(self):
        self.now = utcnow()

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    """Each store-backed test runs against both adapters."""
    if request.param == "memory":
        backend = InMemoryStore()
    else:
        backend = SQLiteStore(tmp_path / "auth.db")
    yield backend
    backend.close()


@pytest.fixture
def services(store, clock):
    config = AuthConfig(challenge_ttl="5m", token_ttl="24h", admin_secret="s3cret")
    return AuthServices(store, config, clock=clock)


@pytest.fixture(scope="session")
def rsa_signer():
    """RSA key generation is slow; share one key across the session."""
    return AgentSigner("rsa-agent", "rsa-pss")
