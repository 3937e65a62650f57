import logging

from fastapi import APIRouter

from ..infra.redis_client import get_sync_redis
from ..services.catalog import get_default_catalog
from ..services.errors import CatalogError
from ..settings import settings

router = APIRouter()
logger = logging.getLogger("unitconv.ready")


@router.get("/ready")
def ready():
    catalog_ok = False
    categories = 0
    try:
        categories = len(get_default_catalog())
        catalog_ok = True
    except (CatalogError, OSError) as e:
        logger.warning(f"Catalog not available: {e}")

    redis_ok = None
    if settings.history_backend == "redis":
        redis_ok = False
        try:
            redis_ok = bool(get_sync_redis().ping())
        except Exception as e:
            logger.warning(f"Redis not available: {e}")

    return {"ok": catalog_ok, "catalog_ok": catalog_ok, "categories": categories, "redis_ok": redis_ok}
