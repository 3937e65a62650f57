"""
Router for catalog browsing, conversions and recent conversion history.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..deps import get_catalog, get_history_store, get_session_id
from ..schemas import (
    CategoryListResponse, CategoryOut, ConvertRequest, ConversionOut,
    ErrorResponse, HistoryClearedResponse, HistoryResponse,
)
from ..services.catalog import Catalog
from ..services.errors import ConversionError, InvalidRequest
from ..services.history import ConversionHistory
from ..services.unit_conversion import convert

router = APIRouter()
logger = logging.getLogger("unitconv.units")

ERROR_STATUS = {
    "invalid_request": 400,
    "unknown_unit": 400,
    "unknown_category": 404,
    "no_conversion_path": 422,
    "malformed_formula": 500,
}

ERROR_RESPONSES = {status: {"model": ErrorResponse} for status in set(ERROR_STATUS.values())}


def to_http_error(e: ConversionError) -> HTTPException:
    return HTTPException(status_code=ERROR_STATUS.get(e.kind, 400), detail=e.to_dict())


@router.get("/categories", response_model=CategoryListResponse)
def list_categories(catalog: Catalog = Depends(get_catalog)):
    return CategoryListResponse(categories=catalog.list_categories())


@router.get("/categories/{category}", response_model=CategoryOut, responses=ERROR_RESPONSES)
def get_category(category: str, catalog: Catalog = Depends(get_catalog)):
    """List the units (and formula keys) of one category."""
    try:
        cat = catalog.get_category(category)
    except ConversionError as e:
        raise to_http_error(e)

    return CategoryOut(
        category=cat.name,
        units=catalog.list_units(category),
        uses_roles=cat.uses_roles,
        formulas=list(cat.formulas),
    )


@router.post("/convert", response_model=ConversionOut, responses=ERROR_RESPONSES)
def convert_units(
    req: ConvertRequest,
    catalog: Catalog = Depends(get_catalog),
    history: ConversionHistory = Depends(get_history_store),
    session_id: str = Depends(get_session_id),
):
    """
    Convert a value between two units of a category.
    Successful conversions are added to the session's recent history.
    """
    try:
        result = convert(catalog, req.category, req.from_unit, req.to_unit, req.value)
    except InvalidRequest as e:
        logger.info(f"Rejected conversion {req.category}:{req.from_unit}->{req.to_unit}: {e.message}")
        raise to_http_error(e)
    except ConversionError as e:
        # Catalog data fault, not user input
        logger.warning(f"Conversion failed {req.category}:{req.from_unit}->{req.to_unit}: {e.message}")
        raise to_http_error(e)

    history.record(session_id, result)
    return ConversionOut(**result.to_dict())


@router.get("/history", response_model=HistoryResponse)
def get_recent(
    history: ConversionHistory = Depends(get_history_store),
    session_id: str = Depends(get_session_id),
):
    """Most recent conversions for this session, newest first."""
    return HistoryResponse(items=history.recent(session_id))


@router.delete("/history", response_model=HistoryClearedResponse)
def clear_recent(
    history: ConversionHistory = Depends(get_history_store),
    session_id: str = Depends(get_session_id),
):
    """Forget this session's recent conversions."""
    history.clear(session_id)
    return HistoryClearedResponse(ok=True)
