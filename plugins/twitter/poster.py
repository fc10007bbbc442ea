# plugins/twitter/poster.py
"""
Authenticated Poster
====================

Posts a caption and an optional image on behalf of the user bound to a
session. The resource plugin is picked from the stored credentials: a token
secret means OAuth1 (tweepy), otherwise the OAuth2 bearer token is used.

Uploaded images are staged to a temporary file first; the poster removes
that file once the attempt is over, whatever the outcome.
"""

import logging
import os
import shutil
import tempfile
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional

from fastapi import UploadFile

from auth.session_store import AccessCredentials, TokenStore
from errors import InvalidPost, NotAuthenticated
from plugin_manager import plugin_manager
from plugins.twitter.config import TwitterSettings, get_twitter_settings
from plugins.twitter.resource import TwitterBaseResourcePlugin, resource_service_for

logger = logging.getLogger(__name__)


def stage_upload(upload: UploadFile, upload_dir: Optional[str] = None) -> str:
    """
    Copy an uploaded file to a temporary path.

    The caller owns the returned path and must remove it.
    """
    suffix = os.path.splitext(upload.filename or "")[1]
    if upload_dir:
        os.makedirs(upload_dir, exist_ok=True)
    fd, path = tempfile.mkstemp(prefix="upload-", suffix=suffix, dir=upload_dir)
    try:
        with os.fdopen(fd, "wb") as out:
            upload.file.seek(0)
            shutil.copyfileobj(upload.file, out)
    except Exception:
        os.remove(path)
        raise
    return path


@contextmanager
def temporary_image(image_path: Optional[str]) -> Iterator[Optional[str]]:
    """Yield the image path and remove the file afterwards."""
    try:
        yield image_path
    finally:
        if image_path and os.path.exists(image_path):
            os.remove(image_path)
            logger.debug(f"Removed temporary upload {image_path}")


class TwitterPoster:
    """
    Posts on behalf of a session.

    Args:
        token_store (TokenStore): Where session credentials live
        settings (TwitterSettings, optional): Twitter settings
        resource_factory (Callable, optional): Creates a resource plugin from
            its service name; defaults to the plugin manager
    """

    def __init__(
        self,
        token_store: TokenStore,
        settings: Optional[TwitterSettings] = None,
        resource_factory: Optional[Callable[..., TwitterBaseResourcePlugin]] = None
    ):
        self.token_store = token_store
        self.settings = settings or get_twitter_settings()
        self._resource_factory = resource_factory or plugin_manager.create_resource_plugin

    def resource_for(self, credentials: AccessCredentials) -> TwitterBaseResourcePlugin:
        service_name = resource_service_for(credentials)
        plugin = self._resource_factory(service_name, settings=self.settings)
        if plugin is None:
            raise RuntimeError(f"Resource plugin {service_name} is not registered")
        return plugin

    def credentials_for(self, session_id: str) -> AccessCredentials:
        """
        Credentials stored for a session.

        Raises:
            NotAuthenticated: If the session holds no access token
        """
        record = self.token_store.get(session_id)
        credentials = record.credentials() if record else None
        if credentials is None:
            raise NotAuthenticated()
        return credentials

    def validate(self, caption: str, has_image: bool = False) -> str:
        caption = (caption or "").strip()
        if not caption and not has_image:
            raise InvalidPost("A post needs a caption or an image")
        if len(caption) > self.settings.MAX_TWEET_LENGTH:
            raise InvalidPost(f"Caption exceeds {self.settings.MAX_TWEET_LENGTH} characters")
        return caption

    async def post(self, session_id: str, caption: str, image_path: Optional[str] = None) -> Dict[str, Any]:
        """
        Post for the user bound to a session.

        Args:
            session_id (str): The session holding the access token
            caption (str): The post text
            image_path (Optional[str]): Temporary image file; removed afterwards

        Returns:
            Dict[str, Any]: The created-post JSON as returned by the platform

        Raises:
            NotAuthenticated: If the session has no access token (no network call is made)
            InvalidPost: If the caption is empty without an image, or too long
            MediaUploadFailed: If the image upload fails (no post is attempted)
            PostCreationFailed: If the post creation fails
        """
        with temporary_image(image_path):
            credentials = self.credentials_for(session_id)
            return await self._publish(credentials, caption, image_path)

    async def publish(
        self,
        credentials: AccessCredentials,
        caption: str,
        image_path: Optional[str] = None
    ) -> Dict[str, Any]:
        """Post with explicit credentials, e.g. those captured for a scheduled post."""
        with temporary_image(image_path):
            return await self._publish(credentials, caption, image_path)

    async def _publish(self, credentials: AccessCredentials, caption: str, image_path: Optional[str]) -> Dict[str, Any]:
        text = self.validate(caption, has_image=bool(image_path))
        resource = self.resource_for(credentials)
        result = await resource.publish(credentials, text, image_path)
        logger.info(f"Post created via {resource.service_name}")
        return result

    async def get_me(self, session_id: str) -> Dict[str, Any]:
        """
        Profile of the user bound to a session.

        Raises:
            NotAuthenticated: If the session has no access token
            RateLimited: If the platform answers 429
        """
        credentials = self.credentials_for(session_id)
        return await self.resource_for(credentials).get_me(credentials)
