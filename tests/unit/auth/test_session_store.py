"""
Unit tests for the session token stores
"""

from datetime import datetime, timedelta, timezone

import pytest

from auth.session_store import (
    AccessCredentials,
    DatabaseTokenStore,
    InMemoryTokenStore,
    TokenRecord
)
from models import SessionRecord

pytestmark = [pytest.mark.unit]


class TestTokenRecord:
    """Test the per-session record"""

    def test_empty_record_is_not_authenticated(self):
        record = TokenRecord()
        assert not record.is_authenticated
        assert record.credentials() is None

    def test_bearer_credentials(self):
        credentials = TokenRecord(access_token="tok1").credentials()
        assert credentials == AccessCredentials(access_token="tok1")
        assert not credentials.is_oauth1

    def test_oauth1_credentials(self):
        credentials = TokenRecord(access_token="tok", token_secret="secret").credentials()
        assert credentials.is_oauth1

    def test_expiry(self):
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        record = TokenRecord(access_token="tok1", expires_at=now + timedelta(minutes=5))
        assert not record.is_expired(now)
        assert record.is_expired(now + timedelta(minutes=5))

    def test_naive_expiry_is_utc(self):
        now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        record = TokenRecord(access_token="tok1", expires_at=datetime(2024, 1, 1, 11, 0))
        assert record.is_expired(now)

    def test_no_expiry_never_expires(self):
        assert not TokenRecord(access_token="tok1").is_expired()

    def test_clear_tokens_keeps_pending_flow(self):
        record = TokenRecord(code_verifier="v", state="s", access_token="tok1", refresh_token="r")
        record.clear_tokens()
        assert record.access_token is None
        assert record.refresh_token is None
        assert record.code_verifier == "v"


class TestInMemoryTokenStore:
    """Test the process-local store"""

    def test_get_missing(self):
        assert InMemoryTokenStore().get("nope") is None

    def test_put_and_get(self):
        store = InMemoryTokenStore()
        store.put("sid", TokenRecord(code_verifier="abc"))
        assert store.get("sid").code_verifier == "abc"

    def test_records_are_copied(self):
        """Mutating a fetched record does not change the stored one"""
        store = InMemoryTokenStore()
        store.put("sid", TokenRecord(code_verifier="abc"))
        record = store.get("sid")
        record.code_verifier = None
        assert store.get("sid").code_verifier == "abc"

    def test_sessions_are_isolated(self):
        store = InMemoryTokenStore()
        store.put("a", TokenRecord(access_token="tok-a"))
        store.put("b", TokenRecord(access_token="tok-b"))
        assert store.get("a").access_token == "tok-a"
        assert store.get("b").access_token == "tok-b"

    def test_clear(self):
        store = InMemoryTokenStore()
        store.put("sid", TokenRecord(access_token="tok1"))
        store.clear("sid")
        store.clear("unknown")
        assert store.get("sid") is None


class TestDatabaseTokenStore:
    """Test the SQLAlchemy-backed store"""

    def test_put_and_get(self, test_session_factory):
        store = DatabaseTokenStore(test_session_factory)
        expires_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
        store.put("sid", TokenRecord(access_token="tok1", refresh_token="r1", expires_at=expires_at))

        record = store.get("sid")
        assert record.access_token == "tok1"
        assert record.refresh_token == "r1"
        assert record.expires_at == expires_at

    def test_update_existing_row(self, test_session_factory):
        store = DatabaseTokenStore(test_session_factory)
        store.put("sid", TokenRecord(code_verifier="abc"))
        store.put("sid", TokenRecord(access_token="tok1"))

        record = store.get("sid")
        assert record.code_verifier is None
        assert record.access_token == "tok1"

        db = test_session_factory()
        try:
            assert db.query(SessionRecord).count() == 1
        finally:
            db.close()

    def test_oauth1_request_token_round_trip(self, test_session_factory):
        store = DatabaseTokenStore(test_session_factory)
        request_token = {"oauth_token": "rt", "oauth_token_secret": "rts"}
        store.put("sid", TokenRecord(oauth1_request_token=request_token))
        assert store.get("sid").oauth1_request_token == request_token

    def test_get_missing_and_clear(self, test_session_factory):
        store = DatabaseTokenStore(test_session_factory)
        assert store.get("sid") is None
        store.put("sid", TokenRecord(access_token="tok1"))
        store.clear("sid")
        assert store.get("sid") is None
