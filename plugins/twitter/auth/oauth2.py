# plugins/twitter/auth/oauth2.py
"""
Twitter OAuth2 (PKCE) Authorization Plugin
==========================================

This module implements the OAuth 2.0 authorization-code grant with Proof Key
for Code Exchange against Twitter/X.

Flow:
1. start_authorization() generates a verifier, its S256 challenge and an
   anti-forgery state, stores verifier and state in the session record and
   returns the authorization URL.
2. The provider redirects back with ?code=&state=; exchange() checks the
   pending flow, posts the grant to the token endpoint using HTTP Basic client
   credentials and stores the bearer token.
3. The verifier is single-use: it is removed as soon as the exchange has been
   attempted, so replaying a callback fails with MissingCodeVerifier.

The exchange is never retried; an authorization code cannot be safely
presented twice.
"""

import asyncio
import logging
import weakref
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode

import httpx

from auth.pkce import generate_code_challenge, generate_code_verifier, generate_state
from auth.session_store import TokenRecord, TokenStore
from errors import (
    MissingAuthorizationCode,
    MissingCodeVerifier,
    NotAuthenticated,
    StateMismatch,
    TokenExchangeFailed
)
from plugins import AuthorizationPlugin
from plugins.twitter.config import TwitterSettings, get_twitter_settings
from plugins.twitter.utils import create_http_client, upstream_payload

logger = logging.getLogger(__name__)

# One refresh in flight per session
_refresh_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()


def _refresh_lock(session_id: str) -> asyncio.Lock:
    lock = _refresh_locks.get(session_id)
    if lock is None:
        lock = asyncio.Lock()
        _refresh_locks[session_id] = lock
    return lock


def build_authorization_url(
    authorize_url: str,
    client_id: str,
    redirect_uri: str,
    scopes: List[str],
    state: str,
    code_challenge: str
) -> str:
    """
    Build the provider authorization URL.

    Scopes are joined with spaces before encoding; every value is then
    percent-encoded on its own (spaces become %20).

    Returns:
        str: Fully-formed authorization URL
    """
    params = {
        "response_type": "code",
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "scope": " ".join(scopes),
        "state": state,
        "code_challenge": code_challenge,
        "code_challenge_method": "S256",
    }
    separator = "&" if "?" in authorize_url else "?"
    return f"{authorize_url}{separator}{urlencode(params, quote_via=quote, safe='')}"


class TwitterOAuth2AuthorizationPlugin(AuthorizationPlugin):
    """
    Plugin for Twitter OAuth2 authorization with PKCE.

    Class Attributes:
        service_name (str): The unique identifier for this plugin
    """

    service_name = "twitter_oauth2"

    def __init__(
        self,
        token_store: TokenStore,
        settings: Optional[TwitterSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.token_store = token_store
        self.settings = settings or get_twitter_settings()
        self._transport = transport
        if not self.settings.CLIENT_ID:
            logger.warning("Twitter OAuth2 plugin initialized without a client id")

    async def get_authorization_url(self, session_id: str, **kwargs) -> str:
        return self.start_authorization(session_id)

    async def process_callback(self, session_id: str, **params) -> str:
        return await self.exchange(params.get("code"), session_id, state=params.get("state"))

    def start_authorization(self, session_id: str) -> str:
        """
        Begin an authorization flow for a session.

        Any earlier pending verifier for the session is overwritten; existing
        access tokens stay in place until the new exchange succeeds.

        Args:
            session_id (str): The session that will present the callback

        Returns:
            str: The authorization URL to redirect to
        """
        code_verifier = generate_code_verifier()
        state = generate_state()

        record = self.token_store.get(session_id) or TokenRecord()
        record.code_verifier = code_verifier
        record.state = state
        self.token_store.put(session_id, record)

        return build_authorization_url(
            self.settings.AUTHORIZE_URL,
            self.settings.CLIENT_ID,
            self.settings.REDIRECT_URI,
            self.settings.scope_list,
            state,
            generate_code_challenge(code_verifier)
        )

    async def exchange(self, code: Optional[str], session_id: str, state: Optional[str] = None) -> str:
        """
        Exchange an authorization code for an access token.

        Args:
            code (str): Authorization code from the callback
            session_id (str): The session holding the pending verifier
            state (str, optional): State returned by the provider

        Returns:
            str: The access token, also stored in the session record

        Raises:
            MissingAuthorizationCode: If the code is empty
            MissingCodeVerifier: If the session has no pending verifier
            StateMismatch: If the returned state differs from the stored one
            TokenExchangeFailed: If the token endpoint call fails
        """
        if not code:
            raise MissingAuthorizationCode()

        record = self.token_store.get(session_id)
        if record is None or not record.code_verifier:
            logger.warning("Authorization callback without a pending code verifier")
            raise MissingCodeVerifier()

        code_verifier = record.code_verifier
        expected_state = record.state

        # Spend the verifier before the network call
        record.code_verifier = None
        record.state = None
        self.token_store.put(session_id, record)

        if expected_state and state != expected_state:
            logger.warning("Authorization callback state mismatch")
            raise StateMismatch()

        token_data = await self._request_token({
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.settings.REDIRECT_URI,
            "code_verifier": code_verifier,
        })

        self._store_tokens(session_id, token_data)
        logger.info("OAuth2 access token obtained")
        return token_data["access_token"]

    async def refresh(self, session_id: str) -> str:
        """
        Renew the session's access token with its refresh token.

        A failed refresh clears the tokens only if the record still holds the
        refresh token that was sent; a concurrent refresh may have rotated it.

        Raises:
            NotAuthenticated: If the session has no refresh token
            TokenExchangeFailed: If the token endpoint call fails
        """
        record = self.token_store.get(session_id)
        if record is None or not record.refresh_token:
            raise NotAuthenticated("No refresh token available, please log in again")

        sent_refresh_token = record.refresh_token
        try:
            token_data = await self._request_token({
                "grant_type": "refresh_token",
                "refresh_token": sent_refresh_token,
            })
        except TokenExchangeFailed:
            current = self.token_store.get(session_id)
            if current is not None and current.refresh_token == sent_refresh_token:
                current.clear_tokens()
                self.token_store.put(session_id, current)
            else:
                logger.info("Refresh failed after the session was updated elsewhere, keeping new tokens")
            raise

        # Providers may rotate the refresh token or omit it
        token_data.setdefault("refresh_token", sent_refresh_token)
        self._store_tokens(session_id, token_data)
        logger.info("OAuth2 access token refreshed")
        return token_data["access_token"]

    async def ensure_fresh(self, session_id: str, now: Optional[datetime] = None) -> None:
        """
        Make sure an expired bearer token is renewed or dropped.

        OAuth1 tokens and tokens without an expiry are left untouched.
        Concurrent callers for the same session share a single refresh.

        Raises:
            NotAuthenticated: If the token expired and cannot be refreshed
        """
        if not self._needs_refresh(self.token_store.get(session_id), now):
            return

        async with _refresh_lock(session_id):
            # Another caller may have refreshed while we waited
            record = self.token_store.get(session_id)
            if not self._needs_refresh(record, now):
                return
            if record.refresh_token:
                await self.refresh(session_id)
                return
            record.clear_tokens()
            self.token_store.put(session_id, record)
            raise NotAuthenticated("Access token expired, please log in again")

    @staticmethod
    def _needs_refresh(record: Optional[TokenRecord], now: Optional[datetime]) -> bool:
        if record is None or not record.access_token or record.token_secret:
            return False
        return record.is_expired(now)

    async def _request_token(self, data: Dict[str, str]) -> Dict[str, Any]:
        auth = None
        if self.settings.CLIENT_SECRET:
            auth = httpx.BasicAuth(self.settings.CLIENT_ID, self.settings.CLIENT_SECRET)
        else:
            # Public client
            data = {**data, "client_id": self.settings.CLIENT_ID}

        try:
            async with create_http_client(self.settings, self._transport) as client:
                response = await client.post(
                    self.settings.TOKEN_URL,
                    data=data,
                    auth=auth,
                    headers={"Content-Type": "application/x-www-form-urlencoded"}
                )
        except httpx.HTTPError as e:
            logger.error(f"Token endpoint request failed: {e}")
            raise TokenExchangeFailed(f"Token endpoint unreachable: {e}", upstream_body=str(e))

        if not response.is_success:
            body = upstream_payload(response)
            logger.error(f"Token exchange failed: {response.status_code} - {body}")
            raise TokenExchangeFailed(
                f"Token exchange failed: {response.status_code}",
                upstream_body=body,
                upstream_status=response.status_code
            )

        try:
            token_data = response.json()
        except ValueError:
            logger.error(f"Token endpoint returned a non-JSON body: {response.text}")
            raise TokenExchangeFailed("Malformed token response", upstream_body=response.text,
                                      upstream_status=response.status_code)

        if not isinstance(token_data, dict) or not token_data.get("access_token"):
            logger.error(f"Token endpoint response has no access_token: {token_data}")
            raise TokenExchangeFailed("Malformed token response", upstream_body=token_data,
                                      upstream_status=response.status_code)

        return token_data

    def _store_tokens(self, session_id: str, token_data: Dict[str, Any]) -> None:
        record = self.token_store.get(session_id) or TokenRecord()
        record.access_token = token_data["access_token"]
        record.token_secret = None
        record.refresh_token = token_data.get("refresh_token")
        record.scope = token_data.get("scope")
        expires_in = token_data.get("expires_in")
        record.expires_at = (
            datetime.now(timezone.utc) + timedelta(seconds=int(expires_in))
            if expires_in else None
        )
        record.code_verifier = None
        record.state = None
        self.token_store.put(session_id, record)
