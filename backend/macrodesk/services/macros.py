"""Macro store: ``macros`` table with a read-through JSON cache in front."""
from __future__ import annotations

import json
import logging
from typing import Iterable

from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from macrodesk.cache import KeyValueCache
from macrodesk.errors import CollaboratorError
from macrodesk.matching import compile_template
from macrodesk.metrics import CACHE_LOOKUPS_TOTAL
from macrodesk.models.macro import MacroRecord
from macrodesk.schemas.macro import Macro

logger = logging.getLogger(__name__)


def _to_record(macro: Macro, position: int) -> MacroRecord:
    return MacroRecord(
        id=macro.id,
        position=position,
        url=macro.url,
        title=macro.title,
        active=macro.active,
        updated_at=macro.updated_at,
        created_at=macro.created_at,
        actions=[action.model_dump() for action in macro.actions],
    )


def _from_record(row: MacroRecord) -> Macro:
    return Macro(
        id=row.id,
        url=row.url,
        title=row.title,
        active=row.active,
        updated_at=row.updated_at,
        created_at=row.created_at,
        actions=row.actions or [],
    )


def dump_macros(macros: Iterable[Macro]) -> str:
    return json.dumps([m.model_dump(mode="json") for m in macros], ensure_ascii=False)


def load_macros(raw: str) -> list[Macro]:
    return [Macro.model_validate(row) for row in json.loads(raw)]


class MacroRepository:
    """Durable macro table. The store is authoritative; the cache is not."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list_all(self) -> list[Macro]:
        try:
            async with self._session_factory() as session:
                rows = (
                    await session.execute(
                        select(MacroRecord).order_by(MacroRecord.position.asc(), MacroRecord.id.asc())
                    )
                ).scalars().all()
        except SQLAlchemyError as exc:
            logger.error("Macro store read failed: %s", exc)
            raise CollaboratorError("Error fetching macros from database") from exc
        return [_from_record(row) for row in rows]

    async def replace_all(self, macros: list[Macro]) -> int:
        """Swap the table contents for ``macros`` in one transaction."""
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await session.execute(delete(MacroRecord))
                    session.add_all(_to_record(m, i) for i, m in enumerate(macros))
        except SQLAlchemyError as exc:
            logger.error("Macro store replace failed: %s", exc)
            raise CollaboratorError("Error saving macros to database") from exc
        return len(macros)


class MacroService:
    """Read path for macros plus first-match lookup."""

    def __init__(self, repository: MacroRepository, cache: KeyValueCache, *, cache_key: str = "macros"):
        self.repository = repository
        self.cache = cache
        self.cache_key = cache_key

    async def _read_cache(self) -> list[Macro] | None:
        try:
            raw = await self.cache.get(self.cache_key)
        except CollaboratorError:
            CACHE_LOOKUPS_TOTAL.labels(key=self.cache_key, result="error").inc()
            return None
        if not raw:
            CACHE_LOOKUPS_TOTAL.labels(key=self.cache_key, result="miss").inc()
            return None
        try:
            macros = load_macros(raw)
        except (ValueError, ValidationError) as exc:
            logger.warning("Discarding unreadable macro cache entry: %s", exc)
            CACHE_LOOKUPS_TOTAL.labels(key=self.cache_key, result="corrupt").inc()
            return None
        CACHE_LOOKUPS_TOTAL.labels(key=self.cache_key, result="hit").inc()
        return macros

    async def refresh_cache(self, macros: list[Macro]) -> None:
        try:
            await self.cache.set(self.cache_key, dump_macros(macros))
        except CollaboratorError as exc:
            logger.warning("Macro cache not refreshed: %s", exc)

    async def list_macros(self) -> list[Macro]:
        cached = await self._read_cache()
        if cached is not None:
            return cached
        macros = await self.repository.list_all()
        await self.refresh_cache(macros)
        return macros

    async def find_match(self, text: str) -> Macro | None:
        """First macro (in store order) with a comment template matching ``text``."""
        for macro in await self.list_macros():
            for template in macro.comment_templates():
                if compile_template(template).matches(text):
                    return macro
        return None
