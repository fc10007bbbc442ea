# plugins/twitter/__init__.py
"""
Twitter Plugin Package for the Social Media Poster
==================================================

This package provides the Twitter integration: users authorize the app and
then post captions and images on their own behalf.

Authorization Servers:
--------------------
- TwitterOAuth2AuthorizationPlugin: OAuth2 authorization code with PKCE
- TwitterOAuthAuthorizationPlugin: OAuth 1.0a through tweepy

Resource Servers:
---------------
- TwitterApiResourcePlugin: v2 media upload and tweet creation with a bearer token
- TwitterV1ResourcePlugin: v1.1 media upload and tweet creation with OAuth1 user context

Routes:
------
- TwitterOAuthRoutes: /auth/start, /auth/callback, /auth/twitter, /auth/twitter/callback, /auth/logout
- TwitterRoutes: /post, /schedule, /me

All plugins are automatically registered with the plugin system when this
package is imported.

Authentication Flow (OAuth2):
---------------------------
1. /auth/start stores a PKCE verifier and state for the session and redirects to Twitter
2. Twitter redirects back to /auth/callback with a code
3. The code and verifier are exchanged for a bearer token, stored for the session
4. /post uses the token to upload media and create the tweet
"""

# Import Authorization Servers
from .auth import TwitterOAuth2AuthorizationPlugin, TwitterOAuthAuthorizationPlugin

# Import Resource Servers
from .resource import TwitterApiResourcePlugin, TwitterV1ResourcePlugin

# Import Routes
from .routes import TwitterOAuthRoutes, TwitterRoutes

# Register plugins
from plugins import register_authorization_plugin, register_resource_plugin, register_route_plugin

# Automatically register the plugins when this package is imported
register_authorization_plugin(TwitterOAuth2AuthorizationPlugin)
register_authorization_plugin(TwitterOAuthAuthorizationPlugin)
register_resource_plugin(TwitterApiResourcePlugin)
register_resource_plugin(TwitterV1ResourcePlugin)
register_route_plugin(TwitterOAuthRoutes)
register_route_plugin(TwitterRoutes)
