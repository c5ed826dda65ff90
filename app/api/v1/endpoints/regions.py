from typing import Optional

from fastapi import APIRouter, Depends

from app.core.config import Settings
from app.dependencies import get_app_settings, get_cache, get_price_store
from app.schemas.price import RegionOut
from app.services.regions import list_active_regions
from app.utils.cache import TTLCache

router = APIRouter()


@router.get("", response_model=list[RegionOut])
def list_regions(
    parent_id: Optional[int] = None,
    level: Optional[int] = None,
    store=Depends(get_price_store),
    cache: TTLCache = Depends(get_cache),
    settings: Settings = Depends(get_app_settings),
):
    return list_active_regions(
        store,
        cache,
        parent_id=parent_id,
        level=level,
        ttl_seconds=settings.region_cache_ttl_seconds,
    )
