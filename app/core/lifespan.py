import contextlib
from contextlib import asynccontextmanager
import asyncio
import logging

from app.ai.config import load_ai_config
from app.ai.factory import get_orchestrator
from app.analytics.db import init_db, purge_old_records

logger = logging.getLogger(__name__)

PURGE_INTERVAL_S = 3600


async def _wait(stop_event: asyncio.Event, timeout: float) -> bool:
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=timeout)
    except asyncio.TimeoutError:
        return False
    return True


@asynccontextmanager
async def lifespan(app):
    init_db()
    ai_config = load_ai_config()
    orchestrator = get_orchestrator()

    if ai_config.probe_on_startup:
        status = await orchestrator.status(refresh=True)
        logger.info("ai_startup_probe preferred=%s", status.preferred)

    stop_event = asyncio.Event()

    async def periodic_purge() -> None:
        while not stop_event.is_set():
            try:
                deleted = purge_old_records()
                if any(deleted.values()):
                    logger.info("analytics_retention_purge deleted=%s", deleted)
            except Exception as exc:  # pragma: no cover
                logger.warning("analytics_retention_purge_failed: %s", exc)
            if await _wait(stop_event, PURGE_INTERVAL_S):
                return

    async def periodic_reprobe() -> None:
        while not await _wait(stop_event, ai_config.reprobe_interval_s):
            try:
                recovered = await orchestrator.reprobe_down_providers()
                if recovered:
                    logger.info(
                        "ai_reprobe results=%s",
                        {name: status.code for name, status in recovered.items()},
                    )
            except Exception as exc:  # pragma: no cover
                logger.warning("ai_reprobe_failed: %s", exc)

    tasks = [asyncio.create_task(periodic_purge())]
    if ai_config.reprobe_interval_s > 0:
        tasks.append(asyncio.create_task(periodic_reprobe()))
    yield
    stop_event.set()
    for task in tasks:
        if not task.done():
            task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
