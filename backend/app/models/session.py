# backend/app/models/session.py
"""
ORM model for login sessions.

Security: the bearer token itself is never stored. ``token_hash`` is the
SHA-256 hex digest of the token handed to the client at login.
"""
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.sql import func

from backend.app.db.base import Base


class UserSession(Base):
    """One row per successful login; a user may hold many at once."""
    __tablename__ = "user_sessions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)

    token_hash = Column(String(64), unique=True, index=True, nullable=False)

    # Fixed window; never extended after creation
    expires_at = Column(DateTime(timezone=True), index=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
