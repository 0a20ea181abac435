"""Macro comparison and listing API."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from starlette.responses import JSONResponse

from macrodesk.api.deps import get_services
from macrodesk.errors import ClientInputError
from macrodesk.metrics import MACRO_COMPARISONS_TOTAL
from macrodesk.schemas.macro import Macro, MacroComparisonRequest, MacroComparisonResponse
from macrodesk.services.container import AppServices

router = APIRouter(prefix="/v1", tags=["macros"])
logger = logging.getLogger(__name__)


@router.post("/macro-comparison", response_model=MacroComparisonResponse)
async def compare_macros(
    payload: MacroComparisonRequest,
    services: AppServices = Depends(get_services),
) -> JSONResponse:
    """Return the first stored macro whose reply template matches ``text``."""
    if not payload.text:
        raise ClientInputError("Text is required")

    macro = await services.macros.find_match(payload.text)
    MACRO_COMPARISONS_TOTAL.labels(matched=str(macro is not None).lower()).inc()
    if macro is None:
        # A miss carries no macro key at all.
        return JSONResponse(MacroComparisonResponse(match=False).model_dump(mode="json", exclude={"macro"}))
    logger.info("Text matched macro %s", macro.id)
    return JSONResponse(MacroComparisonResponse(match=True, macro=macro).model_dump(mode="json"))


@router.get("/list-macros", response_model=list[Macro])
async def list_macros(services: AppServices = Depends(get_services)) -> list[Macro]:
    return await services.macros.list_macros()


@router.post("/sync-macros", tags=["ops"])
async def sync_macros(services: AppServices = Depends(get_services)) -> dict:
    """Run the macro sync immediately (same path as the scheduled job)."""
    return (await services.sync_macros()).as_dict()
