"""FastAPI application: macro matching, feedback, export and QA APIs."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse

from macrodesk.config import Settings, get_settings
from macrodesk.db import create_schema
from macrodesk.errors import MacrodeskError
from macrodesk.logging_config import setup_logging
from macrodesk.services.container import AppServices, build_services

logger = logging.getLogger(__name__)


async def _handle_app_error(request: Request, exc: MacrodeskError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()]
    return JSONResponse(status_code=400, content={"detail": errors})


def create_app(settings: Settings | None = None, services: AppServices | None = None) -> FastAPI:
    """Build the API; ``services`` may be pre-wired (tests), otherwise built on startup."""
    settings = settings or (services.settings if services else get_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        setup_logging()
        logger.info("Macrodesk API starting", extra={"env": settings.APP_ENV})
        app.state.services = services or await build_services(settings)
        await create_schema(app.state.services.engine)

        sync_task: asyncio.Task | None = None
        if settings.MACRO_SYNC_ON_STARTUP:
            sync_task = asyncio.create_task(app.state.services.sync_macros())
        yield
        if sync_task is not None and not sync_task.done():
            sync_task.cancel()
            with suppress(asyncio.CancelledError):
                await sync_task
        await app.state.services.aclose()
        logger.info("Macrodesk API shutting down")

    app = FastAPI(
        title="Macrodesk",
        version="0.1.0",
        description="Macro matching, agent feedback and QA scoring for support teams",
        lifespan=lifespan,
    )

    # ── CORS ──
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.APP_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(MacrodeskError, _handle_app_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)

    from macrodesk.api.feedback import router as feedback_router
    from macrodesk.api.macros import router as macros_router
    from macrodesk.api.ops import router as ops_router
    from macrodesk.api.qa import router as qa_router

    app.include_router(macros_router)
    app.include_router(feedback_router)
    app.include_router(qa_router)
    app.include_router(ops_router)
    return app


app = create_app()
