# backend/app/services/auth.py
"""
Session Manager: registration, password login and opaque bearer sessions.

Sessions use a fixed window (SESSION_TTL_HOURS from login); validating a
session never extends it. Expired rows are removed by ``sweep_expired``,
which is meant to be triggered externally (see ``sweep_sessions.py``).
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.core.config import Settings
from backend.app.core.errors import (
    DuplicateUserError,
    InvalidCredentialsError,
    InvalidSessionError,
    NotFoundError,
    WeakPasswordError,
)
from backend.app.models.session import UserSession
from backend.app.models.user import User
from backend.app.security import hashing
from backend.app.security.tokens import generate_session_token, hash_token

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class LoginResult:
    user: User
    session_token: str
    expires_at: datetime


class SessionManager:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self._settings = settings
        self._clock = clock
        # Verified against when the username is unknown, so both failure
        # paths cost one bcrypt check
        self._dummy_hash: Optional[str] = None

    async def _hash(self, password: str) -> str:
        return await asyncio.to_thread(
            hashing.get_password_hash, password, self._settings.BCRYPT_ROUNDS
        )

    async def _verify(self, password: str, hashed: str) -> bool:
        return await asyncio.to_thread(hashing.verify_password, password, hashed)

    async def _get_dummy_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = await self._hash(generate_session_token())
        return self._dummy_hash

    async def register(self, username: str, email: str, password: str) -> User:
        problems = hashing.check_password_policy(password, self._settings.PASSWORD_MIN_LENGTH)
        if problems:
            raise WeakPasswordError("; ".join(problems))

        email = email.strip().lower()
        hashed_password = await self._hash(password)

        async with self._session_factory.begin() as db:
            result = await db.execute(
                select(User.id).where(or_(User.username == username, User.email == email))
            )
            if result.first() is not None:
                raise DuplicateUserError()

            user = User(username=username, email=email, hashed_password=hashed_password)
            db.add(user)
            try:
                await db.flush()
            except IntegrityError as exc:
                # Lost a race with a concurrent registration
                raise DuplicateUserError() from exc
            await db.refresh(user)

        logger.info("Registered user id=%s username=%s", user.id, user.username)
        return user

    async def login(self, username: str, password: str) -> LoginResult:
        async with self._session_factory.begin() as db:
            result = await db.execute(select(User).where(User.username == username))
            user = result.scalars().first()

        if user is None:
            await self._verify(password, await self._get_dummy_hash())
            logger.info("Failed login for unknown username=%s", username)
            raise InvalidCredentialsError()

        if not await self._verify(password, user.hashed_password):
            logger.info("Failed login for user id=%s", user.id)
            raise InvalidCredentialsError()

        token = generate_session_token()
        expires_at = self._clock() + timedelta(hours=self._settings.SESSION_TTL_HOURS)

        async with self._session_factory.begin() as db:
            db.add(UserSession(user_id=user.id, token_hash=hash_token(token), expires_at=expires_at))

        logger.info("User id=%s logged in, session expires at %s", user.id, expires_at.isoformat())
        return LoginResult(user=user, session_token=token, expires_at=expires_at)

    async def validate_session(self, token: str) -> User:
        if not token:
            raise InvalidSessionError()

        async with self._session_factory.begin() as db:
            result = await db.execute(
                select(UserSession, User)
                .join(User, User.id == UserSession.user_id)
                .where(UserSession.token_hash == hash_token(token))
            )
            row = result.first()

        if row is None:
            raise InvalidSessionError()

        session, user = row
        if as_utc(session.expires_at) < self._clock():
            raise InvalidSessionError()
        return user

    async def logout(self, token: str) -> None:
        async with self._session_factory.begin() as db:
            result = await db.execute(
                delete(UserSession).where(UserSession.token_hash == hash_token(token))
            )

        if result.rowcount == 0:
            raise NotFoundError("Session not found")
        logger.info("Session revoked")

    async def sweep_expired(self) -> int:
        now = self._clock()
        async with self._session_factory.begin() as db:
            result = await db.execute(delete(UserSession).where(UserSession.expires_at < now))

        count = result.rowcount or 0
        logger.info("Swept %d expired sessions", count)
        return count
