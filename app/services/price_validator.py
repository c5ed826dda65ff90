"""Field validation and overlap detection for price writes."""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from app.services.predicates import Eq, Ne, Predicate, Range, and_, or_
from app.utils.coerce import is_blank, to_bool, to_date, to_decimal, to_int

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("service_id", "service_type", "price", "currency", "price_unit", "effective_date")
INTEGER_FIELDS = ("service_id", "service_type")
NUMBER_FIELDS = ("weight_start", "weight_end", "volume_start", "volume_end", "price")
DATE_FIELDS = ("effective_date", "expiry_date")

CONFLICT_MESSAGE = "Overlapping price ranges exist"


@dataclass
class ValidationResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass
class ConflictReport:
    conflicts: list
    has_conflict: bool = True
    message: str = CONFLICT_MESSAGE


class PriceConflictError(Exception):
    """Raised when a write loses the race against a conflicting price."""

    def __init__(self, report: ConflictReport):
        super().__init__(report.message)
        self.report = report


def _safe_number(payload: dict, name: str) -> Optional[Decimal]:
    try:
        return to_decimal(payload.get(name))
    except ValueError:
        return None


def _safe_date(payload: dict, name: str):
    try:
        return to_date(payload.get(name))
    except ValueError:
        return None


def validate_price_data(payload: dict) -> ValidationResult:
    """Collect every problem with a proposed price payload; never raises."""
    errors: list[str] = []

    for name in REQUIRED_FIELDS:
        if is_blank(payload.get(name)):
            errors.append(f"{name} is required")

    for name in INTEGER_FIELDS:
        if is_blank(payload.get(name)):
            continue
        try:
            to_int(payload.get(name))
        except (TypeError, ValueError):
            errors.append(f"{name} must be a valid integer")

    for name in NUMBER_FIELDS:
        if is_blank(payload.get(name)):
            continue
        try:
            to_decimal(payload.get(name))
        except ValueError:
            errors.append(f"{name} must be a valid number")

    for name in DATE_FIELDS:
        if is_blank(payload.get(name)):
            continue
        try:
            to_date(payload.get(name))
        except ValueError:
            errors.append(f"{name} must be a valid date")

    for dimension in ("weight", "volume"):
        start = _safe_number(payload, f"{dimension}_start")
        end = _safe_number(payload, f"{dimension}_end")
        if start is not None and end is not None and start > end:
            errors.append(f"{dimension}_start must not be greater than {dimension}_end")

    effective = _safe_date(payload, "effective_date")
    expiry = _safe_date(payload, "expiry_date")
    if effective is not None and expiry is not None and effective > expiry:
        errors.append("effective_date must not be later than expiry_date")

    return ValidationResult(is_valid=not errors, errors=errors)


def ranges_overlap(p_start, p_end, c_start, c_end) -> bool:
    """Permissive overlap test where a fully unbounded range matches anything.

    Only flags two bounded ranges as disjoint when neither the proposed start
    sits at or below the candidate end nor the proposed end at or above the
    candidate start.
    """
    if p_start is None and p_end is None:
        return True
    if c_start is None and c_end is None:
        return True
    if p_start is not None and c_end is not None and p_start <= c_end:
        return True
    if p_end is not None and c_start is not None and p_end >= c_start:
        return True
    return False


def date_window_predicate(start, end) -> Predicate:
    """Prices whose validity window collides with [start, end] (end None = open)."""
    if end is not None:
        contains_window = and_(
            Range("effective_date", lte=start),
            or_(Eq("expiry_date", None), Range("expiry_date", gte=end)),
        )
    else:
        contains_window = and_(Range("effective_date", lte=start), Eq("expiry_date", None))
    return or_(
        Range("effective_date", gte=start, lte=end),
        Range("expiry_date", gte=start, lte=end),
        contains_window,
    )


def conflict_scope_predicate(payload: dict, exclude_id: Optional[int] = None) -> Predicate:
    return and_(
        Eq("service_id", to_int(payload.get("service_id"))),
        Eq("service_type", to_int(payload.get("service_type"))),
        Eq("is_current", True),
        # NULL region is its own scope ("all regions"), not a wildcard.
        Eq("origin_region_id", to_int(payload.get("origin_region_id"))),
        Eq("destination_region_id", to_int(payload.get("destination_region_id"))),
        Ne("id", exclude_id) if exclude_id is not None else None,
        date_window_predicate(to_date(payload.get("effective_date")), to_date(payload.get("expiry_date"))),
    )


def _dimensions_overlap(payload: dict, candidate: Any) -> bool:
    weight = ranges_overlap(
        to_decimal(payload.get("weight_start")),
        to_decimal(payload.get("weight_end")),
        candidate.weight_start,
        candidate.weight_end,
    )
    volume = ranges_overlap(
        to_decimal(payload.get("volume_start")),
        to_decimal(payload.get("volume_end")),
        candidate.volume_start,
        candidate.volume_end,
    )
    return weight and volume


def check_price_conflict(store, payload: dict, exclude_id: Optional[int] = None) -> Optional[ConflictReport]:
    """Return the current prices a proposed price would collide with, or None.

    Only prices flagged as current take part. The store narrows candidates on
    scope and validity dates; weight/volume overlap is decided here.
    """
    if not to_bool(payload.get("is_current")):
        return None

    candidates = store.find_candidates(conflict_scope_predicate(payload, exclude_id))
    conflicts = [candidate for candidate in candidates if _dimensions_overlap(payload, candidate)]
    if not conflicts:
        return None

    logger.info(
        "Price conflict for service %s/%s: %s",
        payload.get("service_id"),
        payload.get("service_type"),
        [candidate.id for candidate in conflicts],
    )
    return ConflictReport(conflicts=conflicts)
