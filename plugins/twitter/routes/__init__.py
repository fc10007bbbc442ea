# plugins/twitter/routes/__init__.py
"""
Twitter Routes
============

Route plugins for the Twitter integration:
- TwitterOAuthRoutes: authorization flows under /auth
- TwitterRoutes: posting, scheduling and profile endpoints
"""

from .oauth_routes import TwitterOAuthRoutes
from .twitter_routes import TwitterRoutes
