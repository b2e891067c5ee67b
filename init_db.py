import asyncio

from backend.app.core.config import get_settings
from backend.app.core.logging_config import configure_logging
from backend.app.db import create_engine_from_settings, init_models


async def main():
    settings = get_settings()
    configure_logging(settings)

    engine = create_engine_from_settings(settings)
    try:
        await init_models(engine)
    finally:
        await engine.dispose()
    print(">>> Tables Created Successfully!")


if __name__ == "__main__":
    asyncio.run(main())
