"""
Poster Errors
=============

Error taxonomy for the authorization and posting flows. Every error is scoped
to the single request (or single scheduled item) that raised it; route
handlers turn them into a JSON body or a redirect to the failure page.

Each error carries:
- status_code: the HTTP status returned to our own client
- error_code: a stable machine-readable identifier
- upstream_body / upstream_status: the provider's diagnostic payload, if any
"""

from typing import Any, Dict, Optional


class PosterError(Exception):
    """Base class for all poster errors."""

    status_code = 500
    error_code = "poster_error"
    default_message = "Unexpected error"

    def __init__(
        self,
        message: Optional[str] = None,
        upstream_body: Any = None,
        upstream_status: Optional[int] = None
    ):
        self.message = message or self.default_message
        self.upstream_body = upstream_body
        self.upstream_status = upstream_status
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.error_code, "detail": self.message}
        if self.upstream_status is not None:
            body["upstream_status"] = self.upstream_status
        if self.upstream_body is not None:
            body["upstream"] = self.upstream_body
        return body


class MissingAuthorizationCode(PosterError):
    status_code = 400
    error_code = "missing_authorization_code"
    default_message = "Authorization callback did not include a code"


class MissingCodeVerifier(PosterError):
    status_code = 400
    error_code = "missing_code_verifier"
    default_message = "No pending authorization found in session. Start login flow first."


class MissingRequestToken(MissingCodeVerifier):
    error_code = "missing_request_token"
    default_message = "No pending OAuth1 request token found in session. Start login flow first."


class StateMismatch(PosterError):
    status_code = 400
    error_code = "state_mismatch"
    default_message = "Authorization state does not match the pending request"


class AuthorizationDenied(PosterError):
    status_code = 400
    error_code = "authorization_denied"
    default_message = "Authorization was denied by the provider"


class TokenExchangeFailed(PosterError):
    status_code = 502
    error_code = "token_exchange_failed"
    default_message = "Token exchange failed"


class NotAuthenticated(PosterError):
    status_code = 401
    error_code = "not_authenticated"
    default_message = "Not authenticated"


class InvalidPost(PosterError):
    status_code = 400
    error_code = "invalid_post"
    default_message = "Invalid post"


class MediaUploadFailed(PosterError):
    status_code = 502
    error_code = "media_upload_failed"
    default_message = "Media upload failed"


class PostCreationFailed(PosterError):
    status_code = 502
    error_code = "post_creation_failed"
    default_message = "Post creation failed"


class ProfileLookupFailed(PosterError):
    status_code = 502
    error_code = "profile_lookup_failed"
    default_message = "Could not fetch the user profile"


class RateLimited(PosterError):
    status_code = 429
    error_code = "rate_limited"
    default_message = "Rate limit reached, try again later"
