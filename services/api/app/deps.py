"""FastAPI dependencies for the Unit Converter API.

Provides:
- Catalog resolution (process-wide, read-only)
- History backend
- Session resolution (header → default)
"""

from typing import Optional

from fastapi import Header

from .services.catalog import Catalog, get_default_catalog
from .services.history import DEFAULT_SESSION, ConversionHistory, get_history


def get_catalog() -> Catalog:
    return get_default_catalog()


def get_history_store() -> ConversionHistory:
    return get_history()


def get_session_id(
    x_session_id: Optional[str] = Header(None, alias="X-Session-Id"),
) -> str:
    """Resolve the history scope from X-Session-Id, falling back to the shared default."""
    if x_session_id and x_session_id.strip():
        return x_session_id.strip()
    return DEFAULT_SESSION
