# plugins/twitter/auth/oauth.py
"""
Twitter OAuth1 Authentication Plugin
====================================

This module implements the Twitter OAuth1.0a three-legged login. The protocol
itself is handled by tweepy; the plugin only keeps the pending request token
and the resulting (token, token_secret) pair in the session token store.

The TwitterOAuthAuthorizationPlugin class implements the AuthorizationPlugin
interface, providing methods for:
- Initiating the Twitter OAuth1 flow
- Processing OAuth callbacks

tweepy performs blocking network I/O, so every call runs in the thread pool.
"""

import logging
from typing import Optional

import tweepy
from starlette.concurrency import run_in_threadpool

from auth.session_store import TokenRecord, TokenStore
from errors import (
    MissingAuthorizationCode,
    MissingRequestToken,
    StateMismatch,
    TokenExchangeFailed
)
from plugins import AuthorizationPlugin
from plugins.twitter.config import TwitterSettings, get_twitter_settings
from plugins.twitter.utils import TimeoutOAuth1UserHandler

# Set up logging
logger = logging.getLogger(__name__)

class TwitterOAuthAuthorizationPlugin(AuthorizationPlugin):
    """
    Plugin for Twitter OAuth1 authorization.

    Class Attributes:
        service_name (str): The unique identifier for this plugin
    """

    service_name = "twitter_oauth1"

    def __init__(self, token_store: TokenStore, settings: Optional[TwitterSettings] = None, **kwargs):
        """Initialize the Twitter OAuth1 authorization plugin."""
        self.token_store = token_store
        self.settings = settings or get_twitter_settings()
        if not self.settings.CONSUMER_KEY or not self.settings.CONSUMER_SECRET:
            logger.warning("Twitter OAuth1 plugin initialized without API keys")

    def get_oauth_handler(self, callback_url: Optional[str] = None) -> tweepy.OAuth1UserHandler:
        """
        Get a Twitter OAuth handler instance.

        Args:
            callback_url (Optional[str]): Custom callback URL for the OAuth flow

        Returns:
            tweepy.OAuth1UserHandler: Configured OAuth handler whose requests
            are bounded by HTTP_TIMEOUT_SECONDS
        """
        return TimeoutOAuth1UserHandler(
            self.settings.CONSUMER_KEY,
            self.settings.CONSUMER_SECRET,
            callback=callback_url or self.settings.OAUTH1_CALLBACK_URL,
            timeout=self.settings.HTTP_TIMEOUT_SECONDS
        )

    async def get_authorization_url(self, session_id: str, callback_url: Optional[str] = None, **kwargs) -> str:
        """
        Generate a Twitter authorization URL and remember the request token.

        Args:
            session_id (str): The session that will present the callback
            callback_url (Optional[str]): Custom callback URL for the OAuth flow

        Returns:
            str: The authorization URL

        Raises:
            TokenExchangeFailed: If the request token cannot be obtained
        """
        auth = self.get_oauth_handler(callback_url)
        try:
            redirect_url = await run_in_threadpool(auth.get_authorization_url, signin_with_twitter=True)
        except tweepy.TweepyException as e:
            logger.error(f"Twitter OAuth request token error: {str(e)}")
            raise TokenExchangeFailed("Failed to obtain a request token", upstream_body=str(e))

        record = self.token_store.get(session_id) or TokenRecord()
        record.oauth1_request_token = dict(auth.request_token)
        self.token_store.put(session_id, record)

        return redirect_url

    async def process_callback(
        self,
        session_id: str,
        oauth_token: Optional[str] = None,
        oauth_verifier: Optional[str] = None,
        **params
    ) -> str:
        """
        Process OAuth callback and get access token.

        Args:
            session_id (str): The session holding the pending request token
            oauth_token (str): The request token echoed back by Twitter
            oauth_verifier (str): The OAuth verifier returned by Twitter

        Returns:
            str: The access token, also stored with its secret in the session

        Raises:
            MissingAuthorizationCode: If the verifier is missing
            MissingRequestToken: If the session has no pending request token
            StateMismatch: If the echoed token is not the pending one
            TokenExchangeFailed: If the access token exchange fails
        """
        if not oauth_verifier:
            raise MissingAuthorizationCode("Twitter callback did not include an oauth_verifier")

        record = self.token_store.get(session_id)
        if record is None or not record.oauth1_request_token:
            raise MissingRequestToken()

        request_token = record.oauth1_request_token
        record.oauth1_request_token = None
        self.token_store.put(session_id, record)

        if oauth_token and oauth_token != request_token.get("oauth_token"):
            logger.warning("Twitter OAuth callback token does not match the pending request token")
            raise StateMismatch()

        auth = self.get_oauth_handler()
        auth.request_token = request_token

        try:
            access_token, access_token_secret = await run_in_threadpool(auth.get_access_token, oauth_verifier)
        except tweepy.TweepyException as e:
            logger.error(f"Twitter OAuth error: {str(e)}")
            raise TokenExchangeFailed("Failed to complete Twitter OAuth", upstream_body=str(e))

        record = self.token_store.get(session_id) or TokenRecord()
        record.clear_tokens()
        record.access_token = access_token
        record.token_secret = access_token_secret
        self.token_store.put(session_id, record)

        logger.info("OAuth1 access token obtained")
        return access_token

