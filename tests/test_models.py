"""Tests for core record models."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from slashclaw_auth.core.models import AccountKey, Challenge, Token


def test_naive_datetimes_are_utc():
    challenge = Challenge(
        id="c1",
        agent_id="a1",
        algorithm="ed25519",
        challenge="abc",
        expires_at=datetime(2030, 1, 2, 3, 4, 5),
    )

    assert challenge.expires_at.tzinfo == timezone.utc


def test_timestamps_serialize_as_utc_z_in_json():
    """JSON output uses second precision with a Z suffix; Python dumps keep datetimes."""
    eastern = timezone(timedelta(hours=-5))
    token = Token(
        id="t1",
        agent_id="a1",
        key_id="unregistered:abc",
        token="tok",
        expires_at=datetime(2030, 1, 2, 3, 4, 5, 678901, tzinfo=eastern),
    )

    data = json.loads(token.model_dump_json())
    assert data["expires_at"] == "2030-01-02T08:04:05Z"
    assert isinstance(token.model_dump()["expires_at"], datetime)


def test_optional_timestamp_serializes_none():
    key = AccountKey(id="k1", account_id="acct", algorithm="ed25519", public_key="pk")

    data = json.loads(key.model_dump_json())
    assert data["revoked_at"] is None
    assert data["created_at"].endswith("Z")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
