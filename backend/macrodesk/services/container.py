"""Explicitly constructed collaborators shared by the API and the sync worker."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from macrodesk.cache import KeyValueCache, RedisCache
from macrodesk.config import Settings
from macrodesk.db import build_engine, build_session_factory
from macrodesk.errors import FeatureNotConfiguredError
from macrodesk.export.sheets import GoogleSheetsExporter
from macrodesk.helpdesk import ZendeskMacroClient
from macrodesk.qa.analyzer import TextAnalyzer
from macrodesk.services.macro_sync import MacroFetcher, SyncResult, run_macro_sync
from macrodesk.services.macros import MacroRepository, MacroService
from macrodesk.services.templates import TemplateRepository, TemplateService

logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    cache: KeyValueCache
    macro_repository: MacroRepository
    macros: MacroService
    templates: TemplateService
    helpdesk: MacroFetcher | None = None
    analyzer: TextAnalyzer | None = None
    sheets: GoogleSheetsExporter | None = None
    disabled: dict[str, str] = field(default_factory=dict)

    def require_analyzer(self) -> TextAnalyzer:
        if self.analyzer is None:
            raise FeatureNotConfiguredError(self.disabled.get("analyzer", "Text analysis is not configured"))
        return self.analyzer

    def require_sheets(self) -> GoogleSheetsExporter:
        if self.sheets is None:
            self.sheets = GoogleSheetsExporter.from_settings(self.settings)
        return self.sheets

    async def sync_macros(self) -> SyncResult:
        return await run_macro_sync(self.helpdesk, self.macro_repository, self.macros)

    async def aclose(self) -> None:
        if self.analyzer is not None:
            await self.analyzer.close()
        await self.cache.close()
        await self.engine.dispose()


async def build_services(
    settings: Settings,
    *,
    cache: KeyValueCache | None = None,
    helpdesk: MacroFetcher | None = None,
    analyzer: TextAnalyzer | None = None,
) -> AppServices:
    """Wire every collaborator from ``settings``; missing credentials disable one feature each."""
    engine = build_engine(settings.DATABASE_URL, echo=(settings.APP_ENV == "development"))
    session_factory = build_session_factory(engine)
    if cache is None:
        cache = RedisCache.from_url(settings.REDIS_URL, socket_timeout=settings.REDIS_SOCKET_TIMEOUT_S)

    disabled: dict[str, str] = {}
    if helpdesk is None:
        try:
            helpdesk = ZendeskMacroClient.from_settings(settings)
        except FeatureNotConfiguredError as exc:
            logger.warning(str(exc))
            disabled["helpdesk"] = str(exc)
    if analyzer is None:
        try:
            analyzer = TextAnalyzer.from_settings(settings)
        except FeatureNotConfiguredError as exc:
            logger.warning(str(exc))
            disabled["analyzer"] = str(exc)

    macro_repository = MacroRepository(session_factory)
    return AppServices(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        cache=cache,
        macro_repository=macro_repository,
        macros=MacroService(macro_repository, cache, cache_key=settings.CACHE_KEY_MACROS),
        templates=TemplateService(
            TemplateRepository(session_factory),
            cache,
            default_criteria=settings.QA_SCORING_CRITERIA,
            cache_key=settings.CACHE_KEY_TEMPLATES,
        ),
        helpdesk=helpdesk,
        analyzer=analyzer,
        disabled=disabled,
    )
