# plugins/twitter/routes/oauth_routes.py
"""
Twitter OAuth Routes
==================

This module implements the HTTP endpoints that run the authorization flows.

OAuth2 with PKCE:
- GET /auth/start: store verifier and state in the session, redirect to Twitter
- GET /auth/callback: exchange the code for a bearer token

OAuth 1.0a:
- GET /auth/twitter: obtain a request token, redirect to Twitter
- GET /auth/twitter/callback: exchange the verifier for a token pair

- POST /auth/logout: drop the session's tokens and the session cookie

Callbacks never fail with a raw error page: any flow error ends in a
redirect to /failure carrying the error code.
"""

import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse

from auth.middleware import get_session_id, reset_session
from auth.session_store import TokenStore, get_token_store
from errors import AuthorizationDenied, PosterError
from plugin_manager import plugin_manager
from plugins import RoutePlugin

logger = logging.getLogger(__name__)


def failure_redirect(error: PosterError) -> RedirectResponse:
    query = urlencode({"error": error.error_code, "message": error.message})
    return RedirectResponse(f"/failure?{query}", status_code=303)


class TwitterOAuthRoutes(RoutePlugin):
    """
    Plugin for Twitter authorization routes.

    The routes are mounted under the "/auth" prefix in the application.

    Class Attributes:
        service_name (str): The unique identifier for this plugin
    """

    service_name = "twitter_oauth"
    route_prefix = "/auth"

    def get_router(self) -> APIRouter:
        """
        Get the router for Twitter authorization routes.

        Returns:
            APIRouter: FastAPI router with the OAuth2 and OAuth1 endpoints
        """
        router = APIRouter(tags=["twitter", "oauth"])

        @router.get("/start")
        async def oauth2_start(
            session_id: str = Depends(get_session_id),
            token_store: TokenStore = Depends(get_token_store)
        ):
            """Begin the OAuth2 PKCE flow and redirect to Twitter."""
            oauth2 = plugin_manager.create_authorization_plugin("twitter_oauth2", token_store=token_store)
            redirect_url = await oauth2.get_authorization_url(session_id)
            return RedirectResponse(redirect_url)

        @router.get("/callback")
        async def oauth2_callback(
            code: Optional[str] = Query(None),
            state: Optional[str] = Query(None),
            error: Optional[str] = Query(None),
            error_description: Optional[str] = Query(None),
            session_id: str = Depends(get_session_id),
            token_store: TokenStore = Depends(get_token_store)
        ):
            """Complete the OAuth2 PKCE flow."""
            if error:
                logger.warning(f"Twitter authorization denied: {error} {error_description or ''}")
                return failure_redirect(AuthorizationDenied(error_description or error))

            oauth2 = plugin_manager.create_authorization_plugin("twitter_oauth2", token_store=token_store)
            try:
                await oauth2.process_callback(session_id, code=code, state=state)
            except PosterError as e:
                logger.error(f"OAuth2 callback failed: {e.error_code} - {e.message} - {e.upstream_body}")
                return failure_redirect(e)

            return RedirectResponse("/dashboard", status_code=303)

        @router.get("/twitter")
        async def oauth1_start(
            session_id: str = Depends(get_session_id),
            token_store: TokenStore = Depends(get_token_store)
        ):
            """Begin the OAuth1 flow and redirect to Twitter."""
            oauth1 = plugin_manager.create_authorization_plugin("twitter_oauth1", token_store=token_store)
            try:
                redirect_url = await oauth1.get_authorization_url(session_id)
            except PosterError as e:
                logger.error(f"Error initiating Twitter OAuth1 login: {e.message} - {e.upstream_body}")
                return failure_redirect(e)
            return RedirectResponse(redirect_url)

        @router.get("/twitter/callback")
        async def oauth1_callback(
            oauth_token: Optional[str] = Query(None),
            oauth_verifier: Optional[str] = Query(None),
            denied: Optional[str] = Query(None),
            session_id: str = Depends(get_session_id),
            token_store: TokenStore = Depends(get_token_store)
        ):
            """Complete the OAuth1 flow."""
            if denied:
                logger.warning("Twitter OAuth1 authorization denied")
                return failure_redirect(AuthorizationDenied())

            oauth1 = plugin_manager.create_authorization_plugin("twitter_oauth1", token_store=token_store)
            try:
                await oauth1.process_callback(session_id, oauth_token=oauth_token, oauth_verifier=oauth_verifier)
            except PosterError as e:
                logger.error(f"OAuth1 callback failed: {e.error_code} - {e.message} - {e.upstream_body}")
                return failure_redirect(e)

            return RedirectResponse("/dashboard", status_code=303)

        @router.post("/logout")
        async def logout(
            request: Request,
            session_id: str = Depends(get_session_id),
            token_store: TokenStore = Depends(get_token_store)
        ):
            """Forget the session's tokens and clear the session cookie."""
            token_store.clear(session_id)
            reset_session(request)
            return RedirectResponse("/", status_code=303)

        return router
