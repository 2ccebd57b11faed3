"""Unit tests for models/token_store.py -- TokenStore result kinds.

Covers:
- lookups report OK / NOT_FOUND
- inserts report OK, and FAILED for a duplicate token (never retried)
- revoke_access_token is delete-and-count with NOT_FOUND on zero rows
- revoke_refresh_tokens_by_access_token is OK even when nothing matches
- database failures come back as FAILED instead of raising
"""

from datetime import datetime, timedelta

import pytest

from models.base_model import Base
from models.token_store import StoreOutcome

EXPIRES = datetime(2030, 1, 1)


@pytest.fixture
def user(make_user):
    return make_user("alice", scope="first:regular")


def test_find_missing_tokens_is_not_found(store):
    assert store.find_access_token("missing").outcome is StoreOutcome.NOT_FOUND
    assert store.find_refresh_token("missing").outcome is StoreOutcome.NOT_FOUND


def test_insert_then_find_access_token(store, user):
    inserted = store.insert_access_token("tok-a", user.id, "first:regular", EXPIRES)
    assert inserted.ok

    found = store.find_access_token("tok-a")
    assert found.outcome is StoreOutcome.OK
    assert found.value.user_id == user.id
    assert found.value.scope == "first:regular"
    assert found.value.expires == EXPIRES


def test_insert_then_find_refresh_token(store, user):
    assert store.insert_refresh_token("tok-r", "tok-a", user.id, EXPIRES).ok

    found = store.find_refresh_token("tok-r")
    assert found.ok
    assert found.value.access_token == "tok-a"


def test_duplicate_access_token_is_failed(store, user):
    assert store.insert_access_token("dup", user.id, "", EXPIRES).ok

    result = store.insert_access_token("dup", user.id, "", EXPIRES + timedelta(days=1))
    assert result.outcome is StoreOutcome.FAILED
    assert result.error is not None
    assert result.operation == "TokenStore.insert_access_token"

    # the failed insert was rolled back and the original row is untouched
    assert store.find_access_token("dup").value.expires == EXPIRES


def test_revoke_access_token_counts_rows(store, user):
    store.insert_access_token("tok-a", user.id, "", EXPIRES)

    first = store.revoke_access_token("tok-a")
    assert first.outcome is StoreOutcome.OK
    assert first.count == 1

    second = store.revoke_access_token("tok-a")
    assert second.outcome is StoreOutcome.NOT_FOUND
    assert second.count == 0


def test_revoke_refresh_tokens_by_access_token(store, user):
    store.insert_refresh_token("r1", "tok-a", user.id, EXPIRES)
    store.insert_refresh_token("r2", "tok-a", user.id, EXPIRES)
    store.insert_refresh_token("r3", "tok-b", user.id, EXPIRES)

    result = store.revoke_refresh_tokens_by_access_token("tok-a")
    assert result.outcome is StoreOutcome.OK
    assert result.count == 2
    assert store.find_refresh_token("r3").ok

    again = store.revoke_refresh_tokens_by_access_token("tok-a")
    assert again.outcome is StoreOutcome.OK
    assert again.count == 0


def test_revoke_single_refresh_token(store, user):
    store.insert_refresh_token("r1", "tok-a", user.id, EXPIRES)
    assert store.revoke_refresh_token("r1").count == 1
    assert store.revoke_refresh_token("r1").outcome is StoreOutcome.NOT_FOUND


def test_database_failure_is_reported_not_raised(storage, store):
    Base.metadata.drop_all(storage.engine)

    for result in (
        store.find_access_token("x"),
        store.find_refresh_token("x"),
        store.revoke_access_token("x"),
        store.revoke_refresh_tokens_by_access_token("x"),
        store.insert_access_token("x", "u", "", EXPIRES),
    ):
        assert result.outcome is StoreOutcome.FAILED
        assert result.error is not None
