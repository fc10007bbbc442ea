# plugins/twitter/resource/__init__.py
"""
Twitter Resource Plugins
======================

This package contains resource plugins for Twitter, giving the poster access
to the media-upload and post-creation endpoints on the user's behalf.

The package includes two resource server implementations:
- API resource server: v2 endpoints with an OAuth2 bearer token (httpx)
- v1.1 API resource server: OAuth 1.0a user context through tweepy

Both share TwitterBaseResourcePlugin.publish(), which uploads the image (if
any), builds the post payload and creates the post.
"""

import logging
from typing import Any, Dict, Optional

from auth.session_store import AccessCredentials
from plugins import ResourcePlugin

logger = logging.getLogger(__name__)


def build_post_payload(text: str, media_id: Optional[str] = None) -> Dict[str, Any]:
    """Build the post-creation body: text plus the media reference, if any."""
    payload: Dict[str, Any] = {"text": text}
    if media_id:
        payload["media"] = {"media_ids": [media_id]}
    return payload


class TwitterBaseResourcePlugin(ResourcePlugin):
    """
    Base class for Twitter resource plugins.

    Subclasses provide the transport for upload_media, create_post and get_me.
    """

    service_name = "twitter_base"

    async def publish(
        self,
        credentials: AccessCredentials,
        text: str,
        image_path: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Upload the optional image and create the post.

        A failed upload raises MediaUploadFailed and no post is attempted.

        Args:
            credentials (AccessCredentials): The user's credentials
            text (str): The post text
            image_path (Optional[str]): Local path of the image to attach

        Returns:
            Dict[str, Any]: The platform's created-post representation
        """
        media_id = None
        if image_path:
            media_id = await self.upload_media(credentials, image_path)
            logger.info(f"Uploaded media {media_id}")
        return await self.create_post(credentials, build_post_payload(text, media_id))


from .api import TwitterApiResourcePlugin
from .v1 import TwitterV1ResourcePlugin


def resource_service_for(credentials: AccessCredentials) -> str:
    """Name of the resource plugin able to use these credentials."""
    if credentials.is_oauth1:
        return TwitterV1ResourcePlugin.service_name
    return TwitterApiResourcePlugin.service_name
