# plugins/twitter/routes/twitter_routes.py
"""
Twitter Posting Routes
=====================

HTTP endpoints for posting on behalf of the session's user:

- POST /post: multipart form with a caption and an optional image
- POST /schedule: queue a caption for a later time
- GET /schedule: list the session's scheduled posts
- GET /me: the user's profile; a rate limit is reported as a warning

Errors raised here are PosterError subclasses; the application's exception
handler turns them into JSON bodies.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import TypeAdapter, ValidationError

from auth.middleware import get_session_id
from auth.session_store import TokenStore, get_token_store
from config import get_settings
from errors import InvalidPost, RateLimited
from plugin_manager import plugin_manager
from plugins import RoutePlugin
from plugins.twitter.poster import TwitterPoster, stage_upload
from plugins.twitter.scheduler import PostScheduler, get_scheduler

logger = logging.getLogger(__name__)

_schedule_time_adapter = TypeAdapter(datetime)


def parse_schedule_time(value: str) -> datetime:
    """
    Parse an ISO 8601 scheduleTime.

    Accepts a trailing Z as UTC. Naive values are left naive and read as UTC
    by the scheduler.

    Raises:
        InvalidPost: If the value is not a date-time
    """
    try:
        return _schedule_time_adapter.validate_python(value)
    except ValidationError:
        raise InvalidPost(f"Invalid scheduleTime: {value}")


async def ensure_fresh_token(session_id: str, token_store: TokenStore) -> None:
    oauth2 = plugin_manager.create_authorization_plugin("twitter_oauth2", token_store=token_store)
    await oauth2.ensure_fresh(session_id)


class TwitterRoutes(RoutePlugin):
    """
    Plugin for Twitter posting routes.

    Class Attributes:
        service_name (str): The unique identifier for this plugin
    """

    service_name = "twitter"

    def get_router(self) -> APIRouter:
        router = APIRouter(tags=["twitter"])

        @router.post("/post")
        async def create_post(
            caption: str = Form(""),
            image: Optional[UploadFile] = File(None),
            session_id: str = Depends(get_session_id),
            token_store: TokenStore = Depends(get_token_store)
        ):
            """Post a caption and an optional image."""
            await ensure_fresh_token(session_id, token_store)

            image_path = None
            if image is not None and image.filename:
                image_path = stage_upload(image, get_settings().UPLOAD_DIR)

            poster = TwitterPoster(token_store)
            return await poster.post(session_id, caption, image_path)

        @router.post("/schedule", status_code=201)
        async def schedule_post(
            caption: str = Form(...),
            schedule_time: str = Form(..., alias="scheduleTime"),
            session_id: str = Depends(get_session_id),
            token_store: TokenStore = Depends(get_token_store),
            scheduler: PostScheduler = Depends(get_scheduler)
        ):
            """Queue a caption to be posted at scheduleTime (ISO 8601, UTC if no offset)."""
            when = parse_schedule_time(schedule_time)

            await ensure_fresh_token(session_id, token_store)
            poster = TwitterPoster(token_store)
            credentials = poster.credentials_for(session_id)
            text = poster.validate(caption)

            post = scheduler.schedule(session_id, text, when, credentials)
            return post.public_dict()

        @router.get("/schedule")
        async def list_scheduled_posts(
            session_id: str = Depends(get_session_id),
            scheduler: PostScheduler = Depends(get_scheduler)
        ):
            """The session's scheduled posts."""
            return {"posts": [post.public_dict() for post in scheduler.store.list(session_id)]}

        @router.get("/me")
        async def me(
            session_id: str = Depends(get_session_id),
            token_store: TokenStore = Depends(get_token_store)
        ):
            """The authenticated user's profile."""
            await ensure_fresh_token(session_id, token_store)
            poster = TwitterPoster(token_store)
            try:
                profile = await poster.get_me(session_id)
            except RateLimited as e:
                logger.warning(f"Profile lookup rate limited: {e.upstream_body}")
                return {"user": None, "warning": e.message}
            return {"user": profile.get("data"), "warning": None}

        return router
