"""Scheduled macro sync worker.

Each run builds its own collaborators, syncs once and disposes them; a failed
run is only logged and the next beat tick retries.
"""
from __future__ import annotations

import asyncio
import logging

from macrodesk.celery_app import celery
from macrodesk.config import get_settings
from macrodesk.db import create_schema
from macrodesk.services.container import build_services

logger = logging.getLogger(__name__)


@celery.task(name="macrodesk.workers.macro_sync.run_macro_sync_task")
def run_macro_sync_task() -> dict:
    """Celery Beat task: refresh macros from the helpdesk."""
    return asyncio.run(_run_macro_sync())


async def _run_macro_sync() -> dict:
    services = await build_services(get_settings())
    try:
        await create_schema(services.engine)
        result = await services.sync_macros()
    finally:
        await services.aclose()
    if not result.ok:
        logger.warning("Macro sync run did not complete: %s", result.error)
    return result.as_dict()
