"""Delete expired login sessions. Meant to run from cron."""
import asyncio

from backend.app.core.config import get_settings
from backend.app.core.logging_config import configure_logging
from backend.app.db import create_engine_from_settings, create_session_factory
from backend.app.services.auth import SessionManager


async def main():
    settings = get_settings()
    configure_logging(settings)

    engine = create_engine_from_settings(settings)
    try:
        sessions = SessionManager(create_session_factory(engine), settings)
        count = await sessions.sweep_expired()
    finally:
        await engine.dispose()
    print(f">>> Removed {count} expired sessions")


if __name__ == "__main__":
    asyncio.run(main())
