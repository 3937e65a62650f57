"""Pydantic schemas for the Unit Converter API.

Request/response models for:
- Catalog browsing
- Conversions
- Recent conversion history
"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


# --- Catalog ---

class CategoryListResponse(BaseModel):
    categories: list[str]


class CategoryOut(BaseModel):
    category: str
    units: list[str]
    uses_roles: bool = False
    formulas: list[str] = []


# --- Conversion ---

class ConvertRequest(BaseModel):
    # Left optional so missing fields surface as invalid_request from the engine
    category: Optional[str] = None
    from_unit: Optional[str] = None
    to_unit: Optional[str] = None
    # Passed through untouched; the engine rejects booleans and other non-numbers
    value: Any = Field(None, description="Number or numeric string")


class ConversionOut(BaseModel):
    category: str
    from_unit: str
    to_unit: str
    input_value: float
    output_value: float
    strategy: Literal["role_formula", "direct_formula", "reverse_formula", "ratio"]
    computed_at: datetime


class HistoryResponse(BaseModel):
    items: list[ConversionOut]


class HistoryClearedResponse(BaseModel):
    ok: bool = True


# --- Errors ---

class ErrorDetail(BaseModel):
    kind: str
    message: str


class ErrorResponse(BaseModel):
    detail: ErrorDetail
