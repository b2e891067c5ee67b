# backend/app/services/credentials.py
"""
Credential Manager: per-user 115 credentials.

Invariant: a user has at most one credential with ``is_active = true``.
Anything that turns a credential on does so in a single transaction that
first locks the owning user row, then deactivates every other credential of
that user, then activates the target. Concurrent activations for the same
user therefore serialize on the user row (PostgreSQL) or on the database
write lock (SQLite, ``BEGIN IMMEDIATE``), and the last committed one wins.
The partial unique index on ``(user_id) WHERE is_active`` backs this up at
the storage level.

Ownership is always checked against the stored row, never trusted from the
caller: a missing row is ``NotFoundError``, someone else's row is
``ForbiddenError``.
"""
import logging
from typing import List

from sqlalchemy import select, true, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.core.errors import ForbiddenError, NotFoundError
from backend.app.models.credential import Drive115Credential
from backend.app.models.user import User
from backend.app.schemas.credential import Drive115CookieFields

logger = logging.getLogger(__name__)


class CredentialManager:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # helpers (run inside the caller's transaction)
    # ------------------------------------------------------------------

    async def _lock_owner(self, db: AsyncSession, user_id: int) -> None:
        result = await db.execute(
            select(User.id).where(User.id == user_id).with_for_update()
        )
        if result.first() is None:
            raise NotFoundError("User not found")

    async def _get_owned(self, db: AsyncSession, user_id: int, credential_id: int) -> Drive115Credential:
        credential = await db.get(Drive115Credential, credential_id)
        if credential is None:
            raise NotFoundError("Credentials not found")
        if credential.user_id != user_id:
            logger.warning(
                "User id=%s denied access to credentials id=%s owned by another user",
                user_id, credential_id,
            )
            raise ForbiddenError("Access denied: credentials do not belong to user")
        return credential

    async def _deactivate_others(self, db: AsyncSession, user_id: int, keep_id=None) -> None:
        stmt = (
            update(Drive115Credential)
            .where(Drive115Credential.user_id == user_id)
            .where(Drive115Credential.is_active == true())
        )
        if keep_id is not None:
            stmt = stmt.where(Drive115Credential.id != keep_id)
        await db.execute(stmt.values(is_active=False))

    # ------------------------------------------------------------------
    # operations
    # ------------------------------------------------------------------

    async def add(
        self,
        user_id: int,
        name: str,
        cookies: Drive115CookieFields,
        activate: bool = False,
    ) -> Drive115Credential:
        async with self._session_factory.begin() as db:
            if activate:
                await self._lock_owner(db, user_id)
                await self._deactivate_others(db, user_id)

            credential = Drive115Credential(
                user_id=user_id,
                name=name,
                uid=cookies.uid,
                cid=cookies.cid,
                seid=cookies.seid,
                kid=cookies.kid,
                is_active=activate,
            )
            db.add(credential)
            await db.flush()
            await db.refresh(credential)

        logger.info(
            "User id=%s added credentials id=%s (active=%s)", user_id, credential.id, activate
        )
        return credential

    async def list(self, user_id: int) -> List[Drive115Credential]:
        async with self._session_factory.begin() as db:
            result = await db.execute(
                select(Drive115Credential)
                .where(Drive115Credential.user_id == user_id)
                .order_by(Drive115Credential.id)
            )
            return list(result.scalars().all())

    async def list_active(self, user_id: int) -> List[Drive115Credential]:
        async with self._session_factory.begin() as db:
            result = await db.execute(
                select(Drive115Credential)
                .where(
                    Drive115Credential.user_id == user_id,
                    Drive115Credential.is_active == true(),
                )
                .order_by(Drive115Credential.id)
            )
            return list(result.scalars().all())

    async def get(self, user_id: int, credential_id: int) -> Drive115Credential:
        async with self._session_factory.begin() as db:
            return await self._get_owned(db, user_id, credential_id)

    async def update(
        self,
        user_id: int,
        credential_id: int,
        name: str,
        cookies: Drive115CookieFields,
    ) -> Drive115Credential:
        async with self._session_factory.begin() as db:
            credential = await self._get_owned(db, user_id, credential_id)

            # is_active is deliberately left untouched
            credential.name = name
            credential.uid = cookies.uid
            credential.cid = cookies.cid
            credential.seid = cookies.seid
            credential.kid = cookies.kid

            await db.flush()
            await db.refresh(credential)

        logger.info("User id=%s updated credentials id=%s", user_id, credential_id)
        return credential

    async def set_active(self, user_id: int, credential_id: int, active: bool) -> Drive115Credential:
        async with self._session_factory.begin() as db:
            await self._lock_owner(db, user_id)
            credential = await self._get_owned(db, user_id, credential_id)

            if active:
                await self._deactivate_others(db, user_id, keep_id=credential.id)

            credential.is_active = active
            await db.flush()
            await db.refresh(credential)

        logger.info("User id=%s set credentials id=%s active=%s", user_id, credential_id, active)
        return credential

    async def delete(self, user_id: int, credential_id: int) -> None:
        async with self._session_factory.begin() as db:
            credential = await self._get_owned(db, user_id, credential_id)
            await db.delete(credential)

        logger.info("User id=%s deleted credentials id=%s", user_id, credential_id)
