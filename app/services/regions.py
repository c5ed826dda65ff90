from typing import Optional

from app.schemas.price import RegionOut
from app.utils.cache import TTLCache

REGION_CACHE_PREFIX = "regions:"
REGION_TTL_SECONDS = 3600


def list_active_regions(
    store,
    cache: TTLCache,
    *,
    parent_id: Optional[int] = None,
    level: Optional[int] = None,
    ttl_seconds: Optional[int] = REGION_TTL_SECONDS,
) -> list[dict]:
    cache_key = f"{REGION_CACHE_PREFIX}{parent_id}:{level}"
    return cache.get_or_set(
        cache_key,
        lambda: [
            RegionOut.model_validate(region).model_dump()
            for region in store.list_regions(parent_id=parent_id, level=level)
        ],
        ttl_seconds,
    )
