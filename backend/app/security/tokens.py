# backend/app/security/tokens.py
"""
Opaque session tokens.

Tokens are 32 random bytes (256 bits) from ``secrets``, hex encoded. The
database only ever sees ``hash_token(token)``.
"""
import hashlib
import secrets

SESSION_TOKEN_BYTES = 32


def generate_session_token() -> str:
    """
    Generate a cryptographically secure session token.

    Returns:
        64-character hex string
    """
    return secrets.token_hex(SESSION_TOKEN_BYTES)


def hash_token(token: str) -> str:
    """SHA-256 hex digest used as the lookup key for a token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
