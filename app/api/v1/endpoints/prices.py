import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.encoders import jsonable_encoder

from app.core.config import get_settings
from app.core.identity import (
    IdentityContext,
    PERM_PRICE_CREATE,
    PERM_PRICE_DELETE,
    PERM_PRICE_EDIT,
    PERM_PRICE_VIEW,
    PERM_PRICE_VIEW_EXTERNAL,
    PERM_PRICE_VIEW_INTERNAL,
)
from app.dependencies import (
    get_cache,
    get_identity,
    get_price_query_service,
    get_price_store,
    require_permission,
)
from app.middlewares.rate_limit import limiter
from app.schemas.price import (
    PriceHistoryOut,
    PriceOut,
    PriceQueryParams,
    PriceQueryResponse,
    PriceWrite,
    ValidationReport,
)
from app.services.predicates import evaluate
from app.services.price_admin import keep_access_fields, remove_price, save_price
from app.services.price_display import conflict_summary
from app.services.price_query import PriceQueryService
from app.services.price_validator import PriceConflictError, check_price_conflict, validate_price_data
from app.services.visibility import build_visibility_predicate
from app.utils.cache import TTLCache

router = APIRouter()
logger = logging.getLogger(__name__)

VIEW_PERMISSIONS = (PERM_PRICE_VIEW, PERM_PRICE_VIEW_EXTERNAL, PERM_PRICE_VIEW_INTERNAL)


def _query_rate_limit() -> str:
    return get_settings().price_query_rate_limit


def _invalid(errors: list[str]) -> HTTPException:
    return HTTPException(status_code=400, detail={"message": "Invalid price data", "errors": errors})


def _conflict(exc: PriceConflictError) -> HTTPException:
    return HTTPException(
        status_code=409,
        detail=jsonable_encoder(
            {
                "message": exc.report.message,
                "conflicts": [conflict_summary(record) for record in exc.report.conflicts],
            }
        ),
    )


def _visible_price_or_404(store, price_id: int, identity: IdentityContext):
    price = store.get_price(price_id)
    if price is None or not evaluate(build_visibility_predicate(identity), price):
        raise HTTPException(status_code=404, detail="Price not found")
    return price


@router.post("/query", response_model=PriceQueryResponse)
@limiter.limit(_query_rate_limit)
def query_prices(
    request: Request,
    params: PriceQueryParams,
    identity: Optional[IdentityContext] = Depends(get_identity),
    service: PriceQueryService = Depends(get_price_query_service),
):
    return service.query(params, identity)


@router.get("", response_model=PriceQueryResponse)
def list_prices(
    params: PriceQueryParams = Depends(),
    identity: IdentityContext = Depends(require_permission(*VIEW_PERMISSIONS)),
    service: PriceQueryService = Depends(get_price_query_service),
):
    return service.query(params, identity)


@router.post("/validate", response_model=ValidationReport)
def validate_price(
    payload: PriceWrite,
    exclude_id: Optional[int] = None,
    identity: IdentityContext = Depends(require_permission(PERM_PRICE_CREATE, PERM_PRICE_EDIT)),
    store=Depends(get_price_store),
):
    data = payload.model_dump()
    result = validate_price_data(data)
    if not result.is_valid:
        return ValidationReport(is_valid=False, errors=result.errors)
    report = check_price_conflict(store, data, exclude_id=exclude_id)
    conflicts = [conflict_summary(record) for record in report.conflicts] if report else []
    return ValidationReport(is_valid=not conflicts, errors=[], conflicts=conflicts)


@router.get("/{price_id}", response_model=PriceOut)
def get_price(
    price_id: int,
    identity: IdentityContext = Depends(require_permission(*VIEW_PERMISSIONS)),
    store=Depends(get_price_store),
):
    return _visible_price_or_404(store, price_id, identity)


@router.get("/{price_id}/history", response_model=list[PriceHistoryOut])
def get_price_history(
    price_id: int,
    identity: IdentityContext = Depends(require_permission(*VIEW_PERMISSIONS)),
    store=Depends(get_price_store),
):
    _visible_price_or_404(store, price_id, identity)
    return store.list_history(price_id)


@router.post("", response_model=PriceOut, status_code=201)
def create_price(
    payload: PriceWrite,
    identity: IdentityContext = Depends(require_permission(PERM_PRICE_CREATE)),
    store=Depends(get_price_store),
    cache: TTLCache = Depends(get_cache),
):
    data = payload.model_dump()
    result = validate_price_data(data)
    if not result.is_valid:
        raise _invalid(result.errors)
    try:
        return save_price(store, cache, data, operated_by=identity.user_id)
    except PriceConflictError as exc:
        raise _conflict(exc)


@router.put("/{price_id}", response_model=PriceOut)
def update_price(
    price_id: int,
    payload: PriceWrite,
    identity: IdentityContext = Depends(require_permission(PERM_PRICE_EDIT)),
    store=Depends(get_price_store),
    cache: TTLCache = Depends(get_cache),
):
    price = store.get_price(price_id)
    if price is None:
        raise HTTPException(status_code=404, detail="Price not found")
    data = keep_access_fields(payload.model_dump(), price)
    result = validate_price_data(data)
    if not result.is_valid:
        raise _invalid(result.errors)
    try:
        return save_price(store, cache, data, operated_by=identity.user_id, price=price)
    except PriceConflictError as exc:
        raise _conflict(exc)


@router.delete("/{price_id}")
def delete_price(
    price_id: int,
    identity: IdentityContext = Depends(require_permission(PERM_PRICE_DELETE)),
    store=Depends(get_price_store),
    cache: TTLCache = Depends(get_cache),
):
    price = store.get_price(price_id)
    if price is None:
        raise HTTPException(status_code=404, detail="Price not found")
    remove_price(store, cache, price, operated_by=identity.user_id)
    return {"deleted": price_id}
