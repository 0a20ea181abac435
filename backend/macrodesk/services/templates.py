"""QA rubric templates: ``templates`` table behind a read-through cache."""
from __future__ import annotations

import json
import logging

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from macrodesk.cache import KeyValueCache
from macrodesk.errors import ClientInputError, CollaboratorError
from macrodesk.metrics import CACHE_LOOKUPS_TOTAL
from macrodesk.models.template import QATemplate
from macrodesk.schemas.qa import Rubric, TemplateIn

logger = logging.getLogger(__name__)


class TemplateRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list_all(self) -> dict[str, Rubric]:
        try:
            async with self._session_factory() as session:
                rows = (
                    await session.execute(select(QATemplate).order_by(QATemplate.category.asc()))
                ).scalars().all()
        except SQLAlchemyError as exc:
            logger.error("Template store read failed: %s", exc)
            raise CollaboratorError("Error fetching templates from database") from exc
        return {
            row.category: Rubric(
                category=row.category,
                template=row.template,
                scoring_criteria=row.scoring_criteria or {},
            )
            for row in rows
        }

    async def upsert(self, rubric: Rubric) -> None:
        """Insert or overwrite the template for ``rubric.category``."""
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    row = (
                        await session.execute(
                            select(QATemplate).where(QATemplate.category == rubric.category)
                        )
                    ).scalar()
                    if row is None:
                        session.add(
                            QATemplate(
                                category=rubric.category,
                                template=rubric.template,
                                scoring_criteria=dict(rubric.scoring_criteria),
                            )
                        )
                    else:
                        row.template = rubric.template
                        row.scoring_criteria = dict(rubric.scoring_criteria)
        except SQLAlchemyError as exc:
            logger.error("Template upsert failed for %s: %s", rubric.category, exc)
            raise CollaboratorError("Error saving template to database") from exc


class TemplateService:
    """Category set and rubric lookup for the classification service."""

    def __init__(
        self,
        repository: TemplateRepository,
        cache: KeyValueCache,
        *,
        default_criteria: dict[str, float],
        cache_key: str = "templates",
    ):
        self.repository = repository
        self.cache = cache
        self.cache_key = cache_key
        self.default_criteria = dict(default_criteria)

    async def _read_cache(self) -> dict[str, Rubric] | None:
        try:
            raw = await self.cache.get(self.cache_key)
        except CollaboratorError:
            CACHE_LOOKUPS_TOTAL.labels(key=self.cache_key, result="error").inc()
            return None
        if not raw:
            CACHE_LOOKUPS_TOTAL.labels(key=self.cache_key, result="miss").inc()
            return None
        try:
            parsed = {k: Rubric.model_validate(v) for k, v in json.loads(raw).items()}
        except (ValueError, AttributeError, ValidationError) as exc:
            logger.warning("Discarding unreadable template cache entry: %s", exc)
            CACHE_LOOKUPS_TOTAL.labels(key=self.cache_key, result="corrupt").inc()
            return None
        CACHE_LOOKUPS_TOTAL.labels(key=self.cache_key, result="hit").inc()
        return parsed

    async def _write_cache(self, rubrics: dict[str, Rubric]) -> None:
        payload = json.dumps({k: v.model_dump() for k, v in rubrics.items()}, ensure_ascii=False)
        try:
            await self.cache.set(self.cache_key, payload)
        except CollaboratorError as exc:
            logger.warning("Template cache not refreshed: %s", exc)

    async def list_templates(self) -> dict[str, Rubric]:
        cached = await self._read_cache()
        if cached is not None:
            return cached
        rubrics = await self.repository.list_all()
        await self._write_cache(rubrics)
        return rubrics

    async def categories(self) -> list[str]:
        return list((await self.list_templates()).keys())

    async def get(self, category: str) -> Rubric | None:
        return (await self.list_templates()).get(category)

    async def save(self, payload: TemplateIn) -> Rubric:
        category = (payload.category or "").strip()
        template = (payload.template or "").strip()
        if not category or not template:
            raise ClientInputError("Category and template are required")
        rubric = Rubric(
            category=category,
            template=template,
            scoring_criteria=payload.scoring_criteria or self.default_criteria,
        )
        await self.repository.upsert(rubric)
        await self._write_cache(await self.repository.list_all())
        logger.info("Template saved for category %s", category)
        return rubric
