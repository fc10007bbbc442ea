"""
Session Identity
================

The signed session cookie (Starlette SessionMiddleware) carries a single
opaque session id. All authorization state is kept server-side in the
token store, keyed by that id.
"""

import logging
import secrets

from fastapi import Request

logger = logging.getLogger(__name__)

SESSION_ID_KEY = "sid"


def get_session_id(request: Request) -> str:
    """
    Get the opaque session id for this request, creating one if needed.

    Args:
        request: The incoming HTTP request

    Returns:
        str: The session id stored in the session cookie
    """
    session_id = request.session.get(SESSION_ID_KEY)
    if not session_id:
        session_id = secrets.token_urlsafe(32)
        request.session[SESSION_ID_KEY] = session_id
        logger.debug("Created new session id")
    return session_id


def reset_session(request: Request) -> None:
    """Drop the session cookie contents."""
    request.session.clear()
