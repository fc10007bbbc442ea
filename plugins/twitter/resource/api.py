# plugins/twitter/resource/api.py
"""
Twitter API Resource Plugin
=========================

This module implements the Twitter v2 API resource plugin. It calls the
media-upload, post-creation and users/me endpoints with the OAuth2 bearer
token obtained through the PKCE flow.

Every call is a single request bounded by the configured timeout. Upstream
error bodies are preserved on the raised errors for diagnostics.
"""

import logging
import mimetypes
import os
from typing import Any, Dict, Optional

import httpx

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
from plugins.twitter.utils import bearer_headers, create_http_client, upstream_payload

logger = logging.getLogger(__name__)


def extract_media_id(body: Any) -> Optional[str]:
    """Media id from either the v2 ({"data": {"id"}}) or v1.1 upload response."""
    if not isinstance(body, dict):
        return None
    data = body.get("data")
    if isinstance(data, dict) and data.get("id"):
        return str(data["id"])
    media_id = body.get("media_id_string") or body.get("media_id")
    return str(media_id) if media_id else None


class TwitterApiResourcePlugin(TwitterBaseResourcePlugin):
    """
    Plugin for Twitter API operations with a bearer token.

    Class Attributes:
        service_name (str): The unique identifier for this plugin
    """

    service_name = "twitter_api"

    def __init__(
        self,
        settings: Optional[TwitterSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **kwargs
    ):
        self.settings = settings or get_twitter_settings()
        self._transport = transport

    async def upload_media(self, credentials: AccessCredentials, image_path: str) -> str:
        """
        Upload raw image bytes and return the media id.

        Raises:
            MediaUploadFailed: On network error, non-2xx response or missing id
        """
        filename = os.path.basename(image_path)
        content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
        with open(image_path, "rb") as f:
            content = f.read()

        try:
            async with create_http_client(self.settings, self._transport) as client:
                response = await client.post(
                    self.settings.MEDIA_UPLOAD_URL,
                    headers=bearer_headers(credentials.access_token),
                    files={"media": (filename, content, content_type)},
                    data={"media_category": "tweet_image"}
                )
        except httpx.HTTPError as e:
            logger.error(f"Media upload request failed: {e}")
            raise MediaUploadFailed(f"Media upload failed: {e}", upstream_body=str(e))

        if not response.is_success:
            body = upstream_payload(response)
            logger.error(f"Media upload failed: {response.status_code} - {body}")
            raise MediaUploadFailed(
                f"Media upload failed: {response.status_code}",
                upstream_body=body,
                upstream_status=response.status_code
            )

        body = upstream_payload(response)
        media_id = extract_media_id(body)
        if not media_id:
            logger.error(f"Media upload response has no media id: {body}")
            raise MediaUploadFailed("Media upload response has no media id", upstream_body=body,
                                    upstream_status=response.status_code)
        return media_id

    async def create_post(self, credentials: AccessCredentials, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a post and return the response body unmodified.

        Raises:
            PostCreationFailed: On network error, non-2xx or non-JSON response
        """
        try:
            async with create_http_client(self.settings, self._transport) as client:
                response = await client.post(
                    f"{self.settings.API_BASE_URL}/2/tweets",
                    headers=bearer_headers(credentials.access_token),
                    json=payload
                )
        except httpx.HTTPError as e:
            logger.error(f"Post creation request failed: {e}")
            raise PostCreationFailed(f"Post creation failed: {e}", upstream_body=str(e))

        if not response.is_success:
            body = upstream_payload(response)
            logger.error(f"Post creation failed: {response.status_code} - {body}")
            raise PostCreationFailed(
                f"Post creation failed: {response.status_code}",
                upstream_body=body,
                upstream_status=response.status_code
            )

        try:
            return response.json()
        except ValueError:
            raise PostCreationFailed("Post creation returned a non-JSON body", upstream_body=response.text,
                                     upstream_status=response.status_code)

    async def get_me(self, credentials: AccessCredentials) -> Dict[str, Any]:
        """
        Fetch the authenticated user's profile.

        Raises:
            RateLimited: On HTTP 429
            NotAuthenticated: On HTTP 401
            ProfileLookupFailed: On any other failure
        """
        try:
            async with create_http_client(self.settings, self._transport) as client:
                response = await client.get(
                    f"{self.settings.API_BASE_URL}/2/users/me",
                    headers=bearer_headers(credentials.access_token),
                    params={"user.fields": "profile_image_url,username,name"}
                )
        except httpx.HTTPError as e:
            logger.error(f"Profile lookup request failed: {e}")
            raise ProfileLookupFailed(f"Profile lookup failed: {e}", upstream_body=str(e))

        if response.status_code == 429:
            raise RateLimited(upstream_body=upstream_payload(response), upstream_status=429)
        if response.status_code == 401:
            raise NotAuthenticated("Access token was rejected", upstream_body=upstream_payload(response),
                                   upstream_status=401)
        if not response.is_success:
            body = upstream_payload(response)
            logger.error(f"Profile lookup failed: {response.status_code} - {body}")
            raise ProfileLookupFailed(upstream_body=body, upstream_status=response.status_code)

        return upstream_payload(response)
