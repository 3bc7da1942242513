"""Main entry point for the gamification engine

Validates configuration, opens the configured document store, wires the
engine container and shuts everything down cleanly. Host applications call
create_container() themselves and keep the container for the process
lifetime.
"""
import asyncio
import logging
from typing import Optional, Tuple

from hotel_gamification.config import LOG_LEVEL, STORE_BACKEND, load_settings, validate_config
from hotel_gamification.db.connection import Database
from hotel_gamification.db.memory_store import InMemoryDocumentStore
from hotel_gamification.db.postgres_store import PostgresDocumentStore
from hotel_gamification.db.store import DocumentStore
from hotel_gamification.gamification.notifications import NotificationSink
from hotel_gamification.services.container import EngineContainer, init_container

logger = logging.getLogger(__name__)


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=getattr(logging, level.upper(), logging.INFO)
    )


def build_store(backend: str = STORE_BACKEND) -> Tuple[DocumentStore, Optional[Database]]:
    """
    Build the document store for a backend

    Returns:
        (store, database) where database is the pool to open for postgres,
        None for the in-memory store
    """
    if backend == "postgres":
        database = Database()
        return PostgresDocumentStore(database), database
    if backend == "memory":
        logger.warning("Using in-memory store: gamification data will not survive a restart")
        return InMemoryDocumentStore(), None
    raise ValueError(f"Unknown store backend: {backend}")


async def create_container(
    backend: str = STORE_BACKEND,
    notifier: Optional[NotificationSink] = None,
) -> Tuple[EngineContainer, Optional[Database]]:
    """Open the store for a backend and initialize the global container"""
    store, database = build_store(backend)

    if database is not None:
        logger.info("Initializing database connection pool...")
        await database.init_pool()
        try:
            await store.ensure_schema()
        except Exception:
            await database.close_pool()
            raise

    container = init_container(store, notifier=notifier, settings=load_settings())
    return container, database


async def main() -> None:
    """Start the engine, report readiness and shut down"""
    database = None
    try:
        logger.info("Validating configuration...")
        validate_config()

        container, database = await create_container()
        settings = container.settings
        logger.info(
            f"Gamification engine ready (store={STORE_BACKEND}, enabled={settings.enabled}, "
            f"timezone={settings.timezone}, xp_multiplier={settings.xp_multiplier})"
        )
        # Build the dispatcher graph once so wiring errors surface at startup
        container.dispatcher

        if database is not None and not await database.ping():
            logger.warning("Store did not answer the startup ping, progress will not be saved")

    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
    finally:
        if database is not None:
            logger.info("Closing database connection...")
            await database.close_pool()

        logger.info("Shutdown complete")


if __name__ == "__main__":
    configure_logging()
    asyncio.run(main())
