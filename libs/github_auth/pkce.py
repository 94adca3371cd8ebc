"""PKCE (Proof Key for Code Exchange) utilities for the GitHub OAuth flow.

Implements RFC 7636 for the OAuth2 authorization code flow.

Security guarantees:
- code_verifier: 64 bytes (512 bits) of cryptographic randomness
- code_challenge_method: S256 (SHA256, NOT plain text)
- Base64-URL encoding per RFC 4648 Section 5
- State: 32 bytes (256 bits), generated independently of the verifier
"""

import base64
import hashlib
import os
import re
from typing import NamedTuple

# RFC 7636 Section 4.1: unreserved characters, 43-128 chars
_VERIFIER_PATTERN = re.compile(r"^[A-Za-z0-9\-._~]{43,128}$")


class PKCEChallenge(NamedTuple):
    """PKCE challenge pair for OAuth2 authorization."""

    code_verifier: str  # 43-128 char random string
    code_challenge: str  # Base64-URL(SHA256(code_verifier))


def _urlsafe_token(num_bytes: int) -> str:
    return base64.urlsafe_b64encode(os.urandom(num_bytes)).decode("utf-8").rstrip("=")


def generate_verifier() -> str:
    """Generate a PKCE code_verifier.

    Returns:
        86-char Base64-URL string (64 random bytes, no padding)
    """
    return _urlsafe_token(64)


def derive_challenge(verifier: str) -> str:
    """Derive the S256 code_challenge for a verifier.

    Args:
        verifier: PKCE code verifier

    Returns:
        Base64-URL(SHA256(verifier)) without padding (43 chars)

    Raises:
        ValueError: If verifier violates RFC 7636 length or alphabet
    """
    if not _VERIFIER_PATTERN.match(verifier):
        raise ValueError("code_verifier must be 43-128 unreserved characters (RFC 7636)")

    challenge_hash = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(challenge_hash).decode("utf-8").rstrip("=")


def generate_pkce_pair() -> PKCEChallenge:
    """Generate PKCE code_verifier and code_challenge (S256 method)."""
    verifier = generate_verifier()
    return PKCEChallenge(code_verifier=verifier, code_challenge=derive_challenge(verifier))


def generate_state() -> str:
    """Generate cryptographically random state for CSRF protection.

    Returns:
        32-byte random string (Base64-URL encoded)
    """
    return _urlsafe_token(32)


def generate_browser_id() -> str:
    """Generate the opaque identifier stored in the browser cookie.

    Returns:
        32-byte random string (Base64-URL encoded, 256 bits)
    """
    return _urlsafe_token(32)
