import contextlib
from contextlib import asynccontextmanager
import asyncio
import logging

from app.analytics.db import init_db as init_analytics_db, purge_old_records
from app.catalog.store import init_db as init_catalog_db
from app.core.config.discovery import get_discovery_config

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    get_discovery_config()
    init_catalog_db()
    init_analytics_db()

    stop_event = asyncio.Event()

    async def periodic_purge() -> None:
        while not stop_event.is_set():
            try:
                deleted = purge_old_records()
                if any(deleted.values()):
                    logger.info("analytics_retention_purge deleted=%s", deleted)
            except Exception as exc:  # pragma: no cover - defensive guard
                logger.warning("analytics_retention_purge_failed: %s", exc)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=3600)
            except asyncio.TimeoutError:
                continue

    purge_task = asyncio.create_task(periodic_purge())
    yield
    stop_event.set()
    if not purge_task.done():
        purge_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await purge_task
