import math
from datetime import date, datetime, timezone
from typing import Any, Optional

from app.models.price import PriceType, ServiceType, VisibilityType

UNBOUNDED_LABEL = "unbounded"
ALL_REGIONS_LABEL = "All"
EXPIRING_SOON_DAYS = 30

PRICE_TYPE_LABELS = {
    PriceType.EXTERNAL.value: "External price",
    PriceType.INTERNAL.value: "Internal price",
}
VISIBILITY_LABELS = {
    VisibilityType.ALL_ORGANIZATIONS.value: "Visible to all organizations",
    VisibilityType.LISTED_ORGANIZATIONS.value: "Visible to listed organizations",
    VisibilityType.OWNER_ONLY.value: "Visible to owning organization only",
}
SERVICE_TYPE_LABELS = {
    ServiceType.TRADITIONAL_LOGISTICS.value: "Traditional logistics",
    ServiceType.FBA_FIRST_LEG.value: "FBA first leg",
    ServiceType.VALUE_ADDED.value: "Value-added service",
}

BASE_FIELDS = (
    "id",
    "service_id",
    "service_type",
    "origin_region_id",
    "destination_region_id",
    "weight_start",
    "weight_end",
    "volume_start",
    "volume_end",
    "price",
    "currency",
    "price_unit",
    "effective_date",
    "expiry_date",
    "is_current",
    "price_type",
    "visibility_type",
    "organization_id",
    "created_by",
    "remark",
    "created_at",
    "updated_at",
)


def format_range(start, end) -> str:
    return f"{start if start is not None else 0} - {end if end is not None else UNBOUNDED_LABEL}"


def valid_days(expiry: Optional[date], now: Optional[datetime] = None) -> Optional[int]:
    if expiry is None:
        return None
    now = now or datetime.now(timezone.utc)
    expiry_at = datetime(expiry.year, expiry.month, expiry.day, tzinfo=timezone.utc)
    return math.ceil((expiry_at - now).total_seconds() / 86400)


def _region_name(record: Any, side: str) -> Optional[str]:
    name = getattr(record, f"{side}_region_name", None)
    if name is None:
        region = getattr(record, f"{side}_region", None)
        name = getattr(region, "name", None)
    return name


def enrich_price(record: Any, now: Optional[datetime] = None, expiring_soon_days: int = EXPIRING_SOON_DAYS) -> dict:
    """Flatten a price row into the display payload used by listings."""
    data = {name: getattr(record, name, None) for name in BASE_FIELDS}
    data["visible_org_ids"] = list(getattr(record, "visible_org_ids", None) or [])
    data["origin_region_name"] = _region_name(record, "origin")
    data["destination_region_name"] = _region_name(record, "destination")

    days = valid_days(data["expiry_date"], now)
    data["valid_days"] = days
    data["is_expiring_soon"] = days is not None and days <= expiring_soon_days
    data["weight_range"] = format_range(data["weight_start"], data["weight_end"])
    data["volume_range"] = format_range(data["volume_start"], data["volume_end"])
    data["price_display"] = f"{data['price']} {data['currency']}/{data['price_unit']}"
    data["price_type_display"] = PRICE_TYPE_LABELS.get(data["price_type"], PRICE_TYPE_LABELS[PriceType.INTERNAL.value])
    data["visibility_display"] = VISIBILITY_LABELS.get(
        data["visibility_type"], VISIBILITY_LABELS[VisibilityType.OWNER_ONLY.value]
    )
    data["service_type_display"] = SERVICE_TYPE_LABELS.get(data["service_type"])
    return data


def conflict_summary(record: Any) -> dict:
    return {
        "id": getattr(record, "id", None),
        "service_type": getattr(record, "service_type", None),
        "origin_region": _region_name(record, "origin") or ALL_REGIONS_LABEL,
        "destination_region": _region_name(record, "destination") or ALL_REGIONS_LABEL,
        "weight_range": format_range(getattr(record, "weight_start", None), getattr(record, "weight_end", None)),
        "volume_range": format_range(getattr(record, "volume_start", None), getattr(record, "volume_end", None)),
        "effective_date": getattr(record, "effective_date", None),
        "expiry_date": getattr(record, "expiry_date", None),
    }
