"""Tests for the persistence adapters."""

import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from slashclaw_auth import SQLiteStore
from slashclaw_auth.core.errors import ConflictError, StorageError
from slashclaw_auth.core.models import Account, AccountKey, Challenge, Token, utcnow


def _challenge(value="chal", agent_id="a1", algorithm="ed25519", expires_in=timedelta(minutes=5)):
    return Challenge(
        id=str(uuid.uuid4()),
        agent_id=agent_id,
        algorithm=algorithm,
        challenge=value,
        expires_at=utcnow() + expires_in,
    )


def _token(value="tok", expires_in=timedelta(hours=1), account_id=None):
    return Token(
        id=str(uuid.uuid4()),
        agent_id="a1",
        account_id=account_id,
        key_id="unregistered:abc",
        token=value,
        expires_at=utcnow() + expires_in,
    )


def _account(name="Agent"):
    return Account(id=str(uuid.uuid4()), display_name=name)


def _key(account_id, public_key="pk-1", algorithm="ed25519"):
    return AccountKey(
        id=str(uuid.uuid4()),
        account_id=account_id,
        algorithm=algorithm,
        public_key=public_key,
    )


# Challenges


def test_challenge_round_trip(store):
    challenge = _challenge()
    store.create_challenge(challenge)

    found = store.get_challenge("chal")
    assert found == challenge
    assert store.get_challenge("other") is None


def test_expired_challenge_is_still_returned(store):
    """Expiry is decided by the caller so it can report it distinctly."""
    store.create_challenge(_challenge(expires_in=timedelta(minutes=-1)))

    found = store.get_challenge("chal")
    assert found is not None
    assert found.is_expired()


def test_delete_challenge_once(store):
    challenge = _challenge()
    store.create_challenge(challenge)

    assert store.delete_challenge(challenge.id) is True
    assert store.delete_challenge(challenge.id) is False
    assert store.get_challenge("chal") is None


def test_concurrent_delete_has_one_winner(store):
    challenge = _challenge()
    store.create_challenge(challenge)

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: store.delete_challenge(challenge.id), range(40)))

    assert results.count(True) == 1


def test_duplicate_challenge_string_rejected(store):
    store.create_challenge(_challenge())

    with pytest.raises(StorageError):
        store.create_challenge(_challenge())


# Tokens


def test_token_lookup_respects_expiry(store):
    token = _token()
    store.create_token(token)

    assert store.get_token("tok", utcnow()) == token
    assert store.get_token("tok", token.expires_at - timedelta(microseconds=1)) is not None
    assert store.get_token("tok", token.expires_at) is None
    assert store.get_token("missing", utcnow()) is None


# Accounts and keys


def test_account_with_key(store):
    account = _account()
    key = _key(account.id)
    store.create_account_with_key(account, key)

    assert store.get_account(account.id) == account
    assert store.get_account_key(key.id) == key
    assert store.get_account_key_by_public_key("ed25519", "pk-1") == key
    assert store.get_account_key_by_public_key("secp256k1", "pk-1") is None
    assert store.list_account_keys(account.id) == [key]


def test_active_key_uniqueness_across_accounts(store):
    first = _account("first")
    store.create_account_with_key(first, _key(first.id))
    second = _account("second")

    with pytest.raises(ConflictError):
        store.create_account_with_key(second, _key(second.id))

    # Account insert rolled back with the key
    assert store.get_account(second.id) is None


def test_active_key_uniqueness_within_account(store):
    account = _account()
    store.create_account_with_key(account, _key(account.id))

    with pytest.raises(ConflictError):
        store.create_account_key(_key(account.id))


def test_same_public_key_under_other_algorithm_is_distinct(store):
    account = _account()
    store.create_account_with_key(account, _key(account.id))

    store.create_account_key(_key(account.id, algorithm="rsa-pss"))

    assert len(store.list_account_keys(account.id)) == 2


def test_concurrent_key_registration_has_one_winner(store):
    account = _account()
    store.create_account(account)

    def attempt(_):
        try:
            store.create_account_key(_key(account.id, public_key="contested"))
            return True
        except ConflictError:
            return False

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(attempt, range(20)))

    assert results.count(True) == 1


def test_key_for_unknown_account_rejected(store):
    with pytest.raises(StorageError):
        store.create_account_key(_key("no-such-account"))


def test_revoke_and_reregister(store):
    account = _account()
    key = _key(account.id)
    store.create_account_with_key(account, key)

    now = utcnow()
    assert store.revoke_account_key(key.id, now) is True
    assert store.revoke_account_key(key.id, now + timedelta(minutes=1)) is False
    assert store.revoke_account_key("missing", now) is False

    revoked = store.get_account_key(key.id)
    assert revoked.revoked_at == now
    assert store.get_account_key_by_public_key("ed25519", "pk-1") is None

    replacement = _key(account.id)
    store.create_account_key(replacement)
    assert store.get_account_key_by_public_key("ed25519", "pk-1").id == replacement.id


# Housekeeping


def test_delete_expired(store):
    store.create_challenge(_challenge("live"))
    store.create_challenge(_challenge("dead", expires_in=timedelta(minutes=-1)))
    store.create_token(_token("live"))
    store.create_token(_token("dead", expires_in=timedelta(seconds=-1)))

    assert store.delete_expired(utcnow()) == 2
    assert store.get_challenge("live") is not None
    assert store.get_challenge("dead") is None
    assert store.get_token("live", utcnow()) is not None


def test_sqlite_persists_across_connections(tmp_path):
    db_path = tmp_path / "persist.db"
    account = _account()
    key = _key(account.id)

    with SQLiteStore(db_path) as store:
        store.create_account_with_key(account, key)

    with SQLiteStore(db_path) as store:
        assert store.get_account(account.id) == account
        assert store.get_account_key_by_public_key("ed25519", "pk-1") == key


def test_sqlite_in_memory():
    with SQLiteStore(":memory:") as store:
        store.create_challenge(_challenge())
        assert store.get_challenge("chal") is not None


def test_sqlite_unopenable_path(tmp_path):
    with pytest.raises(StorageError):
        SQLiteStore(tmp_path / "missing-dir" / "auth.db")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
