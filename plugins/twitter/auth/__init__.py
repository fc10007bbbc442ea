# plugins/twitter/auth/__init__.py
"""
Twitter Authorization Plugins
============================

This package contains authorization plugins for Twitter:
- OAuth2-based authentication: authorization-code grant with PKCE, bearer tokens
- OAuth-based authentication: Twitter OAuth 1.0a through tweepy

Each authorization plugin implements the AuthorizationPlugin interface defined in
the plugins module and leaves its credentials in the session token store.
"""

from .oauth2 import TwitterOAuth2AuthorizationPlugin, build_authorization_url
from .oauth import TwitterOAuthAuthorizationPlugin
