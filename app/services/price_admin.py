import logging
from typing import Optional

from app.models.price import VisibilityType
from app.services.price_query import invalidate_price_queries
from app.services.price_validator import PriceConflictError, check_price_conflict
from app.utils.cache import TTLCache
from app.utils.coerce import to_bool, to_date, to_decimal, to_int

logger = logging.getLogger(__name__)


def normalize_price_values(payload: dict) -> dict:
    """Coerce a validated payload into column values."""
    return {
        "service_id": to_int(payload.get("service_id")),
        "service_type": to_int(payload.get("service_type")),
        "origin_region_id": to_int(payload.get("origin_region_id")),
        "destination_region_id": to_int(payload.get("destination_region_id")),
        "weight_start": to_decimal(payload.get("weight_start")),
        "weight_end": to_decimal(payload.get("weight_end")),
        "volume_start": to_decimal(payload.get("volume_start")),
        "volume_end": to_decimal(payload.get("volume_end")),
        "price": to_decimal(payload.get("price")),
        "currency": str(payload.get("currency")).strip().upper(),
        "price_unit": str(payload.get("price_unit")).strip(),
        "effective_date": to_date(payload.get("effective_date")),
        "expiry_date": to_date(payload.get("expiry_date")),
        "is_current": to_bool(payload.get("is_current")),
        "price_type": to_int(payload.get("price_type")) or 1,
        "visibility_type": to_int(payload.get("visibility_type")) or VisibilityType.ALL_ORGANIZATIONS.value,
        "organization_id": to_int(payload.get("organization_id")),
        "remark": payload.get("remark"),
    }


ACCESS_FIELDS = ("price_type", "visibility_type", "visible_org_ids")


def keep_access_fields(payload: dict, price) -> dict:
    """Fill access-control fields left out of an update from the stored price."""
    merged = dict(payload)
    for name in ACCESS_FIELDS:
        if merged.get(name) is None:
            merged[name] = getattr(price, name)
    return merged


def _visible_org_ids(values: dict, payload: dict) -> list[int]:
    if values["visibility_type"] != VisibilityType.LISTED_ORGANIZATIONS.value:
        return []
    return [int(org_id) for org_id in payload.get("visible_org_ids") or []]


def save_price(store, cache: TTLCache, payload: dict, *, operated_by: Optional[int], price=None):
    """Create (``price`` None) or update a price after a locked conflict re-check.

    The overlap check and the write share one transaction, and writers on the
    same service scope are serialized, so two concurrent saves cannot both
    pass the check. Raises PriceConflictError when the check fails.
    """
    values = normalize_price_values(payload)
    visible_org_ids = _visible_org_ids(values, payload)
    try:
        store.lock_scope(values["service_id"], values["service_type"])
        report = check_price_conflict(store, payload, exclude_id=price.id if price is not None else None)
        if report is not None:
            raise PriceConflictError(report)
        if price is None:
            saved = store.create_price(values, visible_org_ids, operated_by)
        else:
            saved = store.update_price(price, values, visible_org_ids, operated_by)
        store.commit()
    except Exception:
        store.rollback()
        raise

    invalidate_price_queries(cache)
    logger.info("Price %s saved by user %s", saved.id, operated_by)
    return saved


def remove_price(store, cache: TTLCache, price, *, operated_by: Optional[int]) -> None:
    price_id = price.id
    try:
        store.delete_price(price, operated_by)
        store.commit()
    except Exception:
        store.rollback()
        raise
    invalidate_price_queries(cache)
    logger.info("Price %s deleted by user %s", price_id, operated_by)
