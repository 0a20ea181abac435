"""Feedback API: agent verdicts on suggested replies, plus export."""
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response

from macrodesk.api.deps import get_services
from macrodesk.db import get_session
from macrodesk.errors import MacrodeskError
from macrodesk.export.csv_export import EXPORT_FILENAME, render_csv
from macrodesk.metrics import FEEDBACK_EXPORTS_TOTAL
from macrodesk.schemas.feedback import (
    ExportFilters,
    ExportType,
    FeedbackIn,
    MessageResponse,
    SheetsExportResponse,
)
from macrodesk.services.container import AppServices
from macrodesk.services.feedback import query_feedback, record_feedback

router = APIRouter(prefix="/v1", tags=["feedback"])
logger = logging.getLogger(__name__)


@router.post("/post-feedback", response_model=MessageResponse)
async def post_feedback(
    payload: FeedbackIn,
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await record_feedback(db, payload)
    return MessageResponse(message="Feedback submitted successfully")


@router.get("/export-feedback", response_model=None)
async def export_feedback(
    filters: Annotated[ExportFilters, Query()],
    db: AsyncSession = Depends(get_session),
    services: AppServices = Depends(get_services),
) -> Response | SheetsExportResponse:
    """Export filtered feedback as a CSV attachment or a new Google spreadsheet."""
    export_type = filters.export_type.value
    try:
        rows = await query_feedback(db, filters)
        if filters.export_type == ExportType.GOOGLE_SHEETS:
            logger.info("Exporting %s feedback rows to Google Sheets", len(rows))
            url = await services.require_sheets().export(rows)
            result: Response | SheetsExportResponse = SheetsExportResponse(
                message="Feedback exported successfully to Google Sheets",
                url=url,
            )
        else:
            result = Response(
                content=render_csv(rows),
                media_type="text/csv",
                headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
            )
    except MacrodeskError:
        FEEDBACK_EXPORTS_TOTAL.labels(export_type=export_type, outcome="error").inc()
        raise
    FEEDBACK_EXPORTS_TOTAL.labels(export_type=export_type, outcome="ok").inc()
    return result
