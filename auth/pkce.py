"""PKCE (Proof Key for Code Exchange) generation"""

import base64
import hashlib
import secrets

# RFC 7636 section 4.1
MIN_VERIFIER_LENGTH = 43
MAX_VERIFIER_LENGTH = 128


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode('utf-8').rstrip('=')


def generate_code_verifier(num_bytes: int = 32) -> str:
    """Generate a high-entropy code verifier

    Args:
        num_bytes: Bytes of randomness; 32 bytes encode to 43 characters

    Returns:
        URL-safe verifier between 43 and 128 characters

    Raises:
        ValueError: If the encoded verifier falls outside the allowed length
    """
    verifier = _b64url(secrets.token_bytes(num_bytes))
    if not MIN_VERIFIER_LENGTH <= len(verifier) <= MAX_VERIFIER_LENGTH:
        raise ValueError(
            f"Code verifier must be {MIN_VERIFIER_LENGTH}-{MAX_VERIFIER_LENGTH} characters, "
            f"got {len(verifier)} from {num_bytes} bytes"
        )
    return verifier


def generate_code_challenge(verifier: str) -> str:
    """Create the S256 code challenge for a verifier"""
    return _b64url(hashlib.sha256(verifier.encode('ascii')).digest())


def generate_state() -> str:
    """Generate an anti-forgery state value"""
    return secrets.token_urlsafe(24)
