# backend/app/security/hashing.py
"""
Password hashing with bcrypt.

bcrypt is deliberately slow; callers on the event loop should run these
functions in a worker thread (see ``SessionManager``).
"""
from typing import List

import bcrypt

# bcrypt ignores (or, in recent releases, rejects) input past 72 bytes
BCRYPT_MAX_BYTES = 72


def get_password_hash(password: str, rounds: int = 12) -> str:
    """Hash password using bcrypt with a fresh salt."""
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Verify password against hash (constant time inside bcrypt)."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash or over-long input
        return False


def check_password_policy(password: str, min_length: int) -> List[str]:
    """
    Return the list of policy violations for ``password`` (empty when ok).

    Rules:
    - at least ``min_length`` characters
    - at most 72 bytes once UTF-8 encoded
    - not whitespace only
    """
    problems = []
    if len(password) < min_length:
        problems.append(f"password must be at least {min_length} characters long")
    if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        problems.append(f"password must be at most {BCRYPT_MAX_BYTES} bytes long")
    if not password.strip():
        problems.append("password must not be blank")
    return problems
