"""QA analysis API: rubric templates, classification and coaching feedback."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from macrodesk.api.deps import get_services
from macrodesk.errors import ClientInputError, NotFoundError
from macrodesk.schemas.feedback import MessageResponse
from macrodesk.schemas.qa import (
    AnalysisResult,
    AnalyzeTextRequest,
    DetailedFeedbackRequest,
    DetailedFeedbackResponse,
    TemplateIn,
)
from macrodesk.services.container import AppServices

router = APIRouter(prefix="/v1", tags=["qa"])
logger = logging.getLogger(__name__)


@router.post("/analyze-text", response_model=AnalysisResult)
async def analyze_text(
    payload: AnalyzeTextRequest,
    services: AppServices = Depends(get_services),
) -> AnalysisResult:
    if not payload.text:
        raise ClientInputError("Text is required")
    analyzer = services.require_analyzer()
    rubrics = await services.templates.list_templates()
    return await analyzer.classify_and_score(payload.text, rubrics)


@router.post("/detailed-feedback", response_model=DetailedFeedbackResponse)
async def detailed_feedback(
    payload: DetailedFeedbackRequest,
    services: AppServices = Depends(get_services),
) -> DetailedFeedbackResponse:
    if not payload.text or not payload.category:
        raise ClientInputError("Text and category are required")
    rubric = await services.templates.get(payload.category)
    if rubric is None:
        raise NotFoundError("Invalid category")
    feedback = await services.require_analyzer().detailed_feedback(payload.text, rubric)
    return DetailedFeedbackResponse(feedback=feedback)


@router.post("/templates", response_model=MessageResponse)
async def submit_template(
    payload: TemplateIn,
    services: AppServices = Depends(get_services),
) -> MessageResponse:
    await services.templates.save(payload)
    return MessageResponse(message="Template submitted successfully")
