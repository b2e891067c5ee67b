import logging

from backend.app.db.base import Base
from backend.app.db.session import create_engine_from_settings, create_session_factory

logger = logging.getLogger(__name__)


async def init_models(engine) -> None:
    """Create all tables registered on ``Base.metadata`` (idempotent)."""
    # Models must be imported so their tables are registered on the metadata
    from backend.app.models import credential, session, user  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables are in place")


__all__ = [
    "Base",
    "create_engine_from_settings",
    "create_session_factory",
    "init_models",
]
