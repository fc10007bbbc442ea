# plugins/twitter/scheduler.py
"""
Scheduled Posts
===============

In-memory queue of posts to publish at a later time, swept periodically.

State machine per item:

    scheduled -> posting -> posted
                    |
                    +-> scheduled   (failed attempt, attempts < max_attempts)
                    +-> failed      (failed attempt, attempts == max_attempts)

posted and failed are terminal. dequeue_due() moves due items to "posting"
under the store lock, so a sweep and a concurrent submission (or a second
sweep) never pick up the same item twice.

Items carry the credentials captured when they were scheduled; a captured
bearer token is not refreshed.
"""

import asyncio
import logging
import threading
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from fastapi import Request
from pydantic import BaseModel, Field

from auth.session_store import AccessCredentials

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PostStatus(str, Enum):
    SCHEDULED = "scheduled"
    POSTING = "posting"
    POSTED = "posted"
    FAILED = "failed"


class PendingPost(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    session_id: str
    caption: str
    schedule_time: datetime
    status: PostStatus = PostStatus.SCHEDULED
    access_token: str
    token_secret: Optional[str] = None
    attempts: int = 0
    last_error: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def credentials(self) -> AccessCredentials:
        return AccessCredentials(access_token=self.access_token, token_secret=self.token_secret)

    def public_dict(self) -> Dict[str, Any]:
        """Representation safe to return to clients (no tokens)."""
        return self.model_dump(mode="json", exclude={"access_token", "token_secret", "session_id"})


class PendingPostStore:
    """Interface for the pending-post queue."""

    def enqueue(self, post: PendingPost) -> PendingPost:
        raise NotImplementedError("Subclasses must implement enqueue")

    def dequeue_due(self, now: datetime) -> List[PendingPost]:
        raise NotImplementedError("Subclasses must implement dequeue_due")

    def mark_posted(self, post_id: str, result: Optional[Dict[str, Any]] = None) -> None:
        raise NotImplementedError("Subclasses must implement mark_posted")

    def mark_failed(self, post_id: str, error: str, max_attempts: int) -> PostStatus:
        raise NotImplementedError("Subclasses must implement mark_failed")

    def release(self, post_id: str) -> None:
        raise NotImplementedError("Subclasses must implement release")

    def list(self, session_id: Optional[str] = None) -> List[PendingPost]:
        raise NotImplementedError("Subclasses must implement list")


class InMemoryPendingPostStore(PendingPostStore):
    """Ordered, lock-protected in-process queue. Lost on restart."""

    def __init__(self):
        self._posts: Dict[str, PendingPost] = {}
        self._lock = threading.Lock()

    def enqueue(self, post: PendingPost) -> PendingPost:
        with self._lock:
            self._posts[post.id] = post.model_copy()
            return post.model_copy()

    def dequeue_due(self, now: datetime) -> List[PendingPost]:
        due = []
        with self._lock:
            for post in self._posts.values():
                if post.status == PostStatus.SCHEDULED and post.schedule_time <= now:
                    post.status = PostStatus.POSTING
                    post.attempts += 1
                    due.append(post.model_copy())
        return due

    def mark_posted(self, post_id: str, result: Optional[Dict[str, Any]] = None) -> None:
        with self._lock:
            post = self._posts[post_id]
            post.status = PostStatus.POSTED
            post.result = result
            post.last_error = None

    def mark_failed(self, post_id: str, error: str, max_attempts: int) -> PostStatus:
        with self._lock:
            post = self._posts[post_id]
            post.last_error = error
            post.status = PostStatus.FAILED if post.attempts >= max_attempts else PostStatus.SCHEDULED
            return post.status

    def release(self, post_id: str) -> None:
        """Return an interrupted item to the queue without spending an attempt."""
        with self._lock:
            post = self._posts[post_id]
            if post.status == PostStatus.POSTING:
                post.status = PostStatus.SCHEDULED
                post.attempts -= 1

    def list(self, session_id: Optional[str] = None) -> List[PendingPost]:
        with self._lock:
            return [
                post.model_copy() for post in self._posts.values()
                if session_id is None or post.session_id == session_id
            ]


Publisher = Callable[[PendingPost], Awaitable[Dict[str, Any]]]


class PostScheduler:
    """
    Periodic sweeper for the pending-post queue.

    Args:
        store (PendingPostStore): The queue
        publisher (Callable): Posts one item and returns the created post
        clock (Callable): Returns the current aware datetime
        interval (float): Seconds between sweeps
        max_attempts (int): Attempts before an item becomes failed
    """

    def __init__(
        self,
        store: PendingPostStore,
        publisher: Publisher,
        clock: Callable[[], datetime] = utcnow,
        interval: float = 60.0,
        max_attempts: int = 3
    ):
        self.store = store
        self.publisher = publisher
        self.clock = clock
        self.interval = interval
        self.max_attempts = max_attempts
        self._task: Optional[asyncio.Task] = None
        self._sweep_lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(
        self,
        session_id: str,
        caption: str,
        schedule_time: datetime,
        credentials: AccessCredentials
    ) -> PendingPost:
        """Queue a post with the credentials captured now."""
        if schedule_time.tzinfo is None:
            schedule_time = schedule_time.replace(tzinfo=timezone.utc)
        post = PendingPost(
            session_id=session_id,
            caption=caption,
            schedule_time=schedule_time,
            access_token=credentials.access_token,
            token_secret=credentials.token_secret
        )
        logger.info(f"Scheduled post {post.id} for {schedule_time.isoformat()}")
        return self.store.enqueue(post)

    async def run_once(self) -> int:
        """
        Sweep the queue once.

        Returns:
            int: Number of items posted in this sweep
        """
        async with self._sweep_lock:
            posted = 0
            due = self.store.dequeue_due(self.clock())
            for index, post in enumerate(due):
                try:
                    result = await self.publisher(post)
                except asyncio.CancelledError:
                    # Whatever this sweep claimed but did not finish goes back
                    for unfinished in due[index:]:
                        self.store.release(unfinished.id)
                    logger.warning(f"Sweep cancelled, released {len(due) - index} scheduled post(s)")
                    raise
                except Exception as e:
                    status = self.store.mark_failed(post.id, str(e), self.max_attempts)
                    logger.error(f"Scheduled post {post.id} attempt {post.attempts} failed ({status.value}): {e}")
                    continue
                self.store.mark_posted(post.id, result)
                posted += 1
                logger.info(f"Scheduled post {post.id} published")
            return posted

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"Post scheduler started (interval {self.interval}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Post scheduler stopped")

    async def _run(self) -> None:
        while True:
            try:
                await self.run_once()
            except Exception:
                logger.exception("Scheduler sweep failed")
            await asyncio.sleep(self.interval)


def get_scheduler(request: Request) -> PostScheduler:
    """FastAPI dependency returning the application's scheduler."""
    return request.app.state.scheduler
