"""Macro sync job: helpdesk -> filter -> store -> cache.

Errors never escape :func:`run_macro_sync`; the next scheduled run is the retry.
"""
from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from typing import Protocol

from macrodesk.metrics import MACRO_SYNC_MACROS_SAVED, MACRO_SYNC_RUNS_TOTAL
from macrodesk.schemas.macro import Macro
from macrodesk.services.macros import MacroRepository, MacroService

logger = logging.getLogger(__name__)


class MacroFetcher(Protocol):
    async def fetch_active_macros(self) -> list[Macro]: ...


@dataclass
class SyncResult:
    ok: bool
    fetched: int = 0
    saved: int = 0
    error: str | None = None

    def as_dict(self) -> dict:
        return asdict(self)


def filter_comment_macros(macros: list[Macro]) -> list[Macro]:
    """Keep only macros with at least one comment-producing action."""
    return [m for m in macros if m.is_comment_producing]


async def run_macro_sync(
    fetcher: MacroFetcher | None,
    repository: MacroRepository,
    service: MacroService,
) -> SyncResult:
    started = time.monotonic()
    if fetcher is None:
        logger.warning("Macro sync skipped: helpdesk client not configured")
        MACRO_SYNC_RUNS_TOTAL.labels(outcome="skipped").inc()
        return SyncResult(ok=False, error="helpdesk not configured")

    fetched = 0
    try:
        macros = await fetcher.fetch_active_macros()
        fetched = len(macros)
        filtered = filter_comment_macros(macros)
        saved = await repository.replace_all(filtered)
        await service.refresh_cache(filtered)
    except Exception as exc:
        logger.exception(
            "Error fetching or saving macros",
            extra={"fetched": fetched, "error_class": exc.__class__.__name__},
        )
        MACRO_SYNC_RUNS_TOTAL.labels(outcome="error").inc()
        return SyncResult(ok=False, fetched=fetched, error=str(exc))

    MACRO_SYNC_RUNS_TOTAL.labels(outcome="ok").inc()
    MACRO_SYNC_MACROS_SAVED.observe(saved)
    logger.info(
        "Macros fetched and saved successfully",
        extra={"fetched": fetched, "saved": saved, "elapsed_s": round(time.monotonic() - started, 3)},
    )
    return SyncResult(ok=True, fetched=fetched, saved=saved)
