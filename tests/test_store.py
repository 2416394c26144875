"""Unit tests for auth/store.py -- UserStore credential persistence.

Covers:
- create_user() assigns an id and rejects duplicate emails with DuplicateEmail
- get_by_email() / get_by_id() return None for unknown users
- ping() reports database reachability without raising
- rotate_refresh_hash() is a compare-and-swap: only the expected hash is replaced
- clear_refresh_hash() is a no-op when nothing is stored
"""

import pytest
from sqlalchemy.exc import OperationalError

from auth.errors import DuplicateEmail
from auth.store import UserStore


class TestUsers:
    def test_create_and_lookup(self, store: UserStore) -> None:
        user = store.create_user("a@x.com", "hash-1")
        assert user.id is not None
        assert user.refresh_token_hash is None

        by_email = store.get_by_email("a@x.com")
        by_id = store.get_by_id(user.id)
        assert by_email is not None and by_email.id == user.id
        assert by_id is not None and by_id.email == "a@x.com"
        assert by_id.password_hash == "hash-1"
        assert by_id.created_at

    def test_duplicate_email_rejected_and_original_untouched(self, store: UserStore) -> None:
        original = store.create_user("dup@x.com", "hash-original")
        with pytest.raises(DuplicateEmail):
            store.create_user("dup@x.com", "hash-other")
        assert store.get_by_id(original.id).password_hash == "hash-original"

    def test_empty_password_hash_rejected(self, store: UserStore) -> None:
        with pytest.raises(ValueError):
            store.create_user("empty@x.com", "")

    def test_unknown_user_returns_none(self, store: UserStore) -> None:
        assert store.get_by_email("nobody@x.com") is None
        assert store.get_by_id(9999) is None

    def test_ping(self, store: UserStore) -> None:
        assert store.ping() is True

    def test_ping_reports_unreachable_database(self, store: UserStore, monkeypatch) -> None:
        def _refuse():
            raise OperationalError("SELECT 1", {}, Exception("unable to open database file"))

        monkeypatch.setattr(store.engine, "connect", _refuse)
        assert store.ping() is False

    def test_update_last_login(self, store: UserStore) -> None:
        user = store.create_user("a@x.com", "h")
        store.update_last_login(user.id)
        assert store.get_by_id(user.id).last_login


class TestRefreshHash:
    def test_set_refresh_hash(self, store: UserStore) -> None:
        user = store.create_user("a@x.com", "h")
        assert store.set_refresh_hash(user.id, "rt-1") is True
        assert store.get_by_id(user.id).refresh_token_hash == "rt-1"

    def test_set_refresh_hash_unknown_user(self, store: UserStore) -> None:
        assert store.set_refresh_hash(9999, "rt-1") is False

    def test_rotate_with_expected_hash(self, store: UserStore) -> None:
        user = store.create_user("a@x.com", "h")
        store.set_refresh_hash(user.id, "rt-1")
        assert store.rotate_refresh_hash(user.id, "rt-1", "rt-2") is True
        assert store.get_by_id(user.id).refresh_token_hash == "rt-2"

    def test_rotate_with_stale_hash_loses(self, store: UserStore) -> None:
        user = store.create_user("a@x.com", "h")
        store.set_refresh_hash(user.id, "rt-1")
        store.rotate_refresh_hash(user.id, "rt-1", "rt-2")
        assert store.rotate_refresh_hash(user.id, "rt-1", "rt-3") is False
        assert store.get_by_id(user.id).refresh_token_hash == "rt-2"

    def test_rotate_after_clear_loses(self, store: UserStore) -> None:
        user = store.create_user("a@x.com", "h")
        store.set_refresh_hash(user.id, "rt-1")
        store.clear_refresh_hash(user.id)
        assert store.rotate_refresh_hash(user.id, "rt-1", "rt-2") is False
        assert store.get_by_id(user.id).refresh_token_hash is None

    def test_clear_is_idempotent(self, store: UserStore) -> None:
        user = store.create_user("a@x.com", "h")
        store.set_refresh_hash(user.id, "rt-1")
        assert store.clear_refresh_hash(user.id) is True
        assert store.clear_refresh_hash(user.id) is False
        assert store.get_by_id(user.id).refresh_token_hash is None
