"""Cached, permission-filtered price listing."""
import json
import logging
from datetime import date, timedelta
from typing import Callable, Optional

from app.core.identity import IdentityContext, UserType
from app.schemas.price import PriceQueryParams
from app.services.predicates import Eq, Predicate, Range, and_, is_never, or_
from app.services.price_display import EXPIRING_SOON_DAYS, enrich_price
from app.services.visibility import build_visibility_predicate
from app.utils.cache import TTLCache

logger = logging.getLogger(__name__)

PRICE_QUERY_CACHE_PREFIX = "price_query:"
PRICE_QUERY_TTL_SECONDS = 300
SORT_FIELDS = ("price", "effective_date", "updated_at")


def identity_fingerprint(identity: Optional[IdentityContext]) -> dict:
    """Reduce a caller to the parts that change what a price query returns."""
    if identity is None:
        return {
            "anonymous": True,
            "user_type": UserType.ANONYMOUS.value,
            "organization_id": None,
            "permissions": [],
            "all_orgs": False,
        }
    return {
        "anonymous": False,
        "user_type": identity.user_type,
        "organization_id": identity.organization_id,
        "permissions": sorted(code for code in identity.permissions if code.startswith("price:")),
        "all_orgs": identity.sees_all_organizations,
    }


def build_cache_key(params: PriceQueryParams, query_date: date, identity: Optional[IdentityContext]) -> str:
    body = params.model_dump(mode="json")
    body["query_date"] = query_date.isoformat()
    body["caller"] = identity_fingerprint(identity)
    return PRICE_QUERY_CACHE_PREFIX + json.dumps(body, sort_keys=True, ensure_ascii=False)


def _point_in_range(field_prefix: str, value) -> Predicate:
    # NULL bounds are open on that side.
    return and_(
        or_(Eq(f"{field_prefix}_start", None), Range(f"{field_prefix}_start", lte=value)),
        or_(Eq(f"{field_prefix}_end", None), Range(f"{field_prefix}_end", gte=value)),
    )


def build_price_filter(
    params: PriceQueryParams,
    query_date: date,
    today: date,
    expiring_soon_days: int = EXPIRING_SOON_DAYS,
) -> Predicate:
    expiry_upper = params.validity_end
    if params.is_expiring_soon:
        soon = today + timedelta(days=expiring_soon_days)
        expiry_upper = min(expiry_upper, soon) if expiry_upper else soon
        expiry_clause = Range("expiry_date", gte=query_date, lte=expiry_upper)
    else:
        expiry_clause = or_(Eq("expiry_date", None), Range("expiry_date", gte=query_date, lte=expiry_upper))

    has_price_bounds = params.price_min is not None or params.price_max is not None
    optional_eq = (
        ("service_type", params.service_type),
        ("service_id", params.service_id),
        ("origin_region_id", params.origin_region_id),
        ("destination_region_id", params.destination_region_id),
        ("visibility_type", params.visibility_type),
        ("organization_id", params.organization_id),
        ("created_by", params.created_by),
        ("currency", params.currency),
    )
    return and_(
        Eq("is_current", True),
        Range("effective_date", gte=params.validity_start, lte=query_date),
        expiry_clause,
        Range("price", gte=params.price_min, lte=params.price_max) if has_price_bounds else None,
        *(Eq(name, value) for name, value in optional_eq if value is not None),
        _point_in_range("weight", params.weight) if params.weight is not None else None,
        _point_in_range("volume", params.volume) if params.volume is not None else None,
    )


def resolve_sort(params: PriceQueryParams) -> tuple[str, bool]:
    if params.sort_field not in SORT_FIELDS:
        return "price", False
    return params.sort_field, params.sort_order.lower() == "desc"


class PriceQueryService:
    def __init__(
        self,
        store,
        cache: TTLCache,
        *,
        ttl_seconds: Optional[int] = PRICE_QUERY_TTL_SECONDS,
        expiring_soon_days: int = EXPIRING_SOON_DAYS,
        today: Callable[[], date] = date.today,
    ):
        self.store = store
        self.cache = cache
        self.ttl_seconds = ttl_seconds
        self.expiring_soon_days = expiring_soon_days
        self.today = today

    def query(self, params: PriceQueryParams, identity: Optional[IdentityContext] = None) -> dict:
        today = self.today()
        query_date = params.query_date or today
        key = build_cache_key(params, query_date, identity)
        return self.cache.get_or_set(
            key,
            lambda: self._run(params, query_date, today, identity),
            self.ttl_seconds,
        )

    def _empty_page(self, params: PriceQueryParams) -> dict:
        return {
            "records": [],
            "pagination": {"current": params.page, "page_size": params.page_size, "total": 0},
        }

    def _run(self, params: PriceQueryParams, query_date: date, today: date, identity) -> dict:
        visibility = build_visibility_predicate(identity)
        if is_never(visibility):
            return self._empty_page(params)

        predicate = and_(build_price_filter(params, query_date, today, self.expiring_soon_days), visibility)
        sort = resolve_sort(params)
        skip = (params.page - 1) * params.page_size

        total = self.store.count(predicate)
        rows = self.store.find_page(predicate, sort, skip, params.page_size)
        records = [enrich_price(row, expiring_soon_days=self.expiring_soon_days) for row in rows]
        logger.debug("Price query miss: %s rows of %s", len(records), total)
        return {
            "records": records,
            "pagination": {"current": params.page, "page_size": params.page_size, "total": total},
        }


def invalidate_price_queries(cache: TTLCache) -> int:
    dropped = cache.delete_prefix(PRICE_QUERY_CACHE_PREFIX)
    if dropped:
        logger.info("Dropped %s cached price queries", dropped)
    return dropped
