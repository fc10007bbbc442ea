# plugins/twitter/resource/v1.py
"""
Twitter OAuth1 Resource Plugin
===============================

This module implements the resource plugin used with OAuth 1.0a user
credentials. Media goes through the v1.1 upload endpoint (tweepy.API) and
posts through the v2 create-tweet endpoint (tweepy.Client), both signed with
the consumer keys and the user's token pair.

tweepy is synchronous; calls run in the thread pool. The client session is
bounded by HTTP_TIMEOUT_SECONDS like every other outbound call.
"""

import logging
from typing import Any, Dict, Optional

import requests
import tweepy
from starlette.concurrency import run_in_threadpool

from auth.session_store import AccessCredentials
from errors import (
    MediaUploadFailed,
    NotAuthenticated,
    PostCreationFailed,
    ProfileLookupFailed,
    RateLimited
)
from plugins.twitter.config import TwitterSettings, get_twitter_settings
from plugins.twitter.resource import TwitterBaseResourcePlugin
from plugins.twitter.utils import apply_timeout

logger = logging.getLogger(__name__)


def tweepy_error_payload(error: Exception) -> Any:
    """Upstream diagnostics carried by a tweepy exception."""
    if isinstance(error, tweepy.HTTPException):
        return error.api_errors or error.api_messages or str(error)
    return str(error)


def tweepy_error_status(error: Exception) -> Optional[int]:
    if isinstance(error, tweepy.HTTPException):
        return error.response.status_code
    return None


class TwitterV1ResourcePlugin(TwitterBaseResourcePlugin):
    """
    Plugin for Twitter operations with OAuth1 user credentials.

    Class Attributes:
        service_name (str): The unique identifier for this plugin
    """

    service_name = "twitter_v1"

    def __init__(self, settings: Optional[TwitterSettings] = None, **kwargs):
        self.settings = settings or get_twitter_settings()

    def get_api(self, credentials: AccessCredentials) -> tweepy.API:
        auth = tweepy.OAuth1UserHandler(
            self.settings.CONSUMER_KEY,
            self.settings.CONSUMER_SECRET,
            credentials.access_token,
            credentials.token_secret
        )
        return tweepy.API(auth, timeout=self.settings.HTTP_TIMEOUT_SECONDS)

    def get_client(self, credentials: AccessCredentials) -> tweepy.Client:
        client = tweepy.Client(
            consumer_key=self.settings.CONSUMER_KEY,
            consumer_secret=self.settings.CONSUMER_SECRET,
            access_token=credentials.access_token,
            access_token_secret=credentials.token_secret
        )
        apply_timeout(client.session, self.settings.HTTP_TIMEOUT_SECONDS)
        return client

    async def upload_media(self, credentials: AccessCredentials, image_path: str) -> str:
        """
        Upload an image through the v1.1 media endpoint.

        Raises:
            MediaUploadFailed: If tweepy or the HTTP session reports an error
        """
        api = self.get_api(credentials)
        try:
            media = await run_in_threadpool(api.media_upload, filename=image_path)
        except (tweepy.TweepyException, requests.RequestException) as e:
            logger.error(f"Media upload failed: {e}")
            raise MediaUploadFailed(
                "Media upload failed",
                upstream_body=tweepy_error_payload(e),
                upstream_status=tweepy_error_status(e)
            )
        return media.media_id_string

    async def create_post(self, credentials: AccessCredentials, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a tweet and return {"data": ...} as the v2 endpoint does.

        Raises:
            PostCreationFailed: If tweepy or the HTTP session reports an error
        """
        client = self.get_client(credentials)
        media_ids = payload.get("media", {}).get("media_ids")
        try:
            response = await run_in_threadpool(
                client.create_tweet,
                text=payload["text"],
                media_ids=media_ids,
                user_auth=True
            )
        except (tweepy.TweepyException, requests.RequestException) as e:
            logger.error(f"Post creation failed: {e}")
            raise PostCreationFailed(
                "Post creation failed",
                upstream_body=tweepy_error_payload(e),
                upstream_status=tweepy_error_status(e)
            )
        return {"data": response.data}

    async def get_me(self, credentials: AccessCredentials) -> Dict[str, Any]:
        """
        Fetch the authenticated user's profile.

        Raises:
            RateLimited: If Twitter answers 429
            NotAuthenticated: If the token pair is rejected
            ProfileLookupFailed: On any other tweepy or HTTP session error
        """
        client = self.get_client(credentials)
        try:
            response = await run_in_threadpool(
                client.get_me,
                user_auth=True,
                user_fields=["profile_image_url", "username", "name"]
            )
        except tweepy.TooManyRequests as e:
            raise RateLimited(upstream_body=tweepy_error_payload(e), upstream_status=429)
        except tweepy.Unauthorized as e:
            raise NotAuthenticated("Access token was rejected", upstream_body=tweepy_error_payload(e),
                                   upstream_status=401)
        except (tweepy.TweepyException, requests.RequestException) as e:
            logger.error(f"Profile lookup failed: {e}")
            raise ProfileLookupFailed(upstream_body=tweepy_error_payload(e),
                                      upstream_status=tweepy_error_status(e))
        user = response.data
        return {"data": user.data if user is not None else None}
