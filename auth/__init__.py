"""
Authentication module for the social media poster.

This module provides the session-level authentication services:
- PKCE verifier/challenge generation
- Server-side token storage keyed by session id
- Session identity handling
"""

from .pkce import (
    generate_code_verifier,
    generate_code_challenge,
    generate_state
)

from .session_store import (
    AccessCredentials,
    TokenRecord,
    TokenStore,
    InMemoryTokenStore,
    DatabaseTokenStore,
    get_token_store
)

from .middleware import (
    get_session_id,
    reset_session
)

__all__ = [
    # PKCE
    "generate_code_verifier",
    "generate_code_challenge",
    "generate_state",

    # Token storage
    "AccessCredentials",
    "TokenRecord",
    "TokenStore",
    "InMemoryTokenStore",
    "DatabaseTokenStore",
    "get_token_store",

    # Session identity
    "get_session_id",
    "reset_session"
]
