# plugins/twitter/utils.py
"""Shared helpers for outbound calls to the Twitter API"""

from typing import Any, Optional

import httpx
import tweepy

from plugins.twitter.config import TwitterSettings


def create_http_client(
    settings: TwitterSettings,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> httpx.AsyncClient:
    """Create an AsyncClient bounded by the configured timeout."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.HTTP_TIMEOUT_SECONDS),
        transport=transport
    )


def upstream_payload(response: httpx.Response) -> Any:
    """Return the provider's error body, parsed as JSON when possible."""
    try:
        return response.json()
    except ValueError:
        return response.text


def bearer_headers(access_token: str) -> dict:
    return {"Authorization": f"Bearer {access_token}"}


def apply_timeout(session, timeout: float):
    """
    Bound every request made through a requests session.

    tweepy.Client and requests_oauthlib never pass a timeout themselves.
    """
    request = session.request

    def request_with_timeout(method, url, **kwargs):
        kwargs.setdefault("timeout", timeout)
        return request(method, url, **kwargs)

    session.request = request_with_timeout
    return session


class TimeoutOAuth1UserHandler(tweepy.OAuth1UserHandler):
    """
    OAuth1UserHandler whose OAuth sessions are bounded by a timeout.

    tweepy replaces self.oauth with a fresh OAuth1Session in
    get_access_token, so the timeout is applied on every assignment.
    """

    def __init__(self, *args, timeout: float, **kwargs):
        self.timeout = timeout
        super().__init__(*args, **kwargs)

    @property
    def oauth(self):
        return self._oauth

    @oauth.setter
    def oauth(self, session):
        self._oauth = apply_timeout(session, self.timeout)
