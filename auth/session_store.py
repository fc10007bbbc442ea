"""
Session Token Store
===================

Server-side storage for per-session authorization state. The session cookie
only carries an opaque session id; everything else lives here:

- code_verifier / state: set when an OAuth2 flow starts, removed once the
  callback has been processed
- oauth1_request_token: the pending OAuth1 request token between redirect
  and callback
- access_token (+ token_secret for OAuth1, refresh_token / expires_at for
  OAuth2): set after a successful exchange, used by every posting call

Implementations are interchangeable behind the TokenStore interface.
"""

import logging
import threading
from datetime import datetime, timezone
from functools import lru_cache
from typing import Dict, Optional

from pydantic import BaseModel
from sqlalchemy.orm import sessionmaker

from config import get_settings
from models import SessionRecord

logger = logging.getLogger(__name__)


class AccessCredentials(BaseModel):
    """Credentials needed to act on the user's behalf."""
    access_token: str
    token_secret: Optional[str] = None

    @property
    def is_oauth1(self) -> bool:
        return bool(self.token_secret)


class TokenRecord(BaseModel):
    """Authorization state bound to a single session."""
    code_verifier: Optional[str] = None
    state: Optional[str] = None
    oauth1_request_token: Optional[Dict[str, str]] = None
    access_token: Optional[str] = None
    token_secret: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    scope: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return now >= expires_at

    def credentials(self) -> Optional[AccessCredentials]:
        if not self.access_token:
            return None
        return AccessCredentials(access_token=self.access_token, token_secret=self.token_secret)

    def clear_tokens(self) -> None:
        self.access_token = None
        self.token_secret = None
        self.refresh_token = None
        self.expires_at = None
        self.scope = None


class TokenStore:
    """Capability interface for session token storage."""

    def get(self, session_id: str) -> Optional[TokenRecord]:
        raise NotImplementedError("Subclasses must implement get")

    def put(self, session_id: str, record: TokenRecord) -> None:
        raise NotImplementedError("Subclasses must implement put")

    def clear(self, session_id: str) -> None:
        raise NotImplementedError("Subclasses must implement clear")


class InMemoryTokenStore(TokenStore):
    """Process-local token store. Records are copied in and out."""

    def __init__(self):
        self._records: Dict[str, TokenRecord] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> Optional[TokenRecord]:
        with self._lock:
            record = self._records.get(session_id)
            return record.model_copy(deep=True) if record else None

    def put(self, session_id: str, record: TokenRecord) -> None:
        with self._lock:
            self._records[session_id] = record.model_copy(deep=True)

    def clear(self, session_id: str) -> None:
        with self._lock:
            self._records.pop(session_id, None)


class DatabaseTokenStore(TokenStore):
    """Token store backed by the poster_sessions table."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        if session_factory is None:
            from database import SessionLocal
            session_factory = SessionLocal
        self._session_factory = session_factory

    def get(self, session_id: str) -> Optional[TokenRecord]:
        db = self._session_factory()
        try:
            row = db.get(SessionRecord, session_id)
            if row is None:
                return None
            return TokenRecord.model_validate_json(row.data)
        finally:
            db.close()

    def put(self, session_id: str, record: TokenRecord) -> None:
        db = self._session_factory()
        try:
            row = db.get(SessionRecord, session_id)
            if row is None:
                row = SessionRecord(session_id=session_id, data=record.model_dump_json())
                db.add(row)
            else:
                row.data = record.model_dump_json()
            db.commit()
        finally:
            db.close()

    def clear(self, session_id: str) -> None:
        db = self._session_factory()
        try:
            row = db.get(SessionRecord, session_id)
            if row is not None:
                db.delete(row)
                db.commit()
        finally:
            db.close()


@lru_cache()
def get_token_store() -> TokenStore:
    """Return the configured token store (FastAPI dependency)."""
    backend = get_settings().TOKEN_STORE_BACKEND.lower()
    if backend == "database":
        logger.info("Using database-backed token store")
        return DatabaseTokenStore()
    if backend != "memory":
        raise ValueError(f"Unknown token store backend: {backend}")
    logger.info("Using in-memory token store")
    return InMemoryTokenStore()
