"""Feedback store: append-only inserts and filtered reads for export."""
from __future__ import annotations

import logging

from sqlalchemy import Select, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from macrodesk.errors import CollaboratorError
from macrodesk.metrics import FEEDBACK_RECORDED_TOTAL
from macrodesk.models.feedback import FeedbackRecord
from macrodesk.schemas.feedback import ExportFilters, FeedbackIn

logger = logging.getLogger(__name__)


def build_export_query(filters: ExportFilters) -> Select:
    """AND together every filter that is set; date bounds are inclusive by day."""
    stmt = select(FeedbackRecord)
    if filters.feedback_type is not None:
        stmt = stmt.where(FeedbackRecord.feedback_type == filters.feedback_type.value)
    if filters.generation_type is not None:
        stmt = stmt.where(FeedbackRecord.generation_type == filters.generation_type.value)
    if filters.start_date is not None:
        stmt = stmt.where(func.date(FeedbackRecord.created_at) >= filters.start_date)
    if filters.end_date is not None:
        stmt = stmt.where(func.date(FeedbackRecord.created_at) <= filters.end_date)
    return stmt.order_by(FeedbackRecord.created_at.asc(), FeedbackRecord.id.asc())


async def record_feedback(db: AsyncSession, payload: FeedbackIn) -> FeedbackRecord:
    row = FeedbackRecord(
        ticket_id=payload.ticket_id,
        feedback_type=payload.feedback_type.value,
        feedback_presets=",".join(payload.feedback_presets),
        written_feedback=payload.written_feedback or None,
        text_editor_content=payload.text_editor_content,
        generation_type=payload.generation_type.value,
    )
    try:
        db.add(row)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Feedback insert failed for ticket %s: %s", payload.ticket_id, exc)
        raise CollaboratorError("Error saving feedback") from exc

    FEEDBACK_RECORDED_TOTAL.labels(
        feedback_type=row.feedback_type, generation_type=row.generation_type
    ).inc()
    logger.info("Feedback recorded for ticket %s: %s", payload.ticket_id, row.feedback_type)
    return row


async def query_feedback(db: AsyncSession, filters: ExportFilters) -> list[FeedbackRecord]:
    try:
        return list((await db.execute(build_export_query(filters))).scalars().all())
    except SQLAlchemyError as exc:
        logger.error("Feedback export query failed: %s", exc)
        raise CollaboratorError("Error reading feedback from database") from exc
