"""
Widget session tokens.

Tokens are random URL-safe strings handed to the widget once; only their
SHA-256 digest is persisted and used for lookups.
"""

import hashlib
import secrets

TOKEN_BYTES = 32


def hash_session_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def issue_session_token() -> tuple[str, str]:
    """Mint a fresh token. Returns (token, digest)."""
    token = secrets.token_urlsafe(TOKEN_BYTES)
    return token, hash_session_token(token)
