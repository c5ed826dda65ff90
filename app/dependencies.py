from typing import Iterator, Optional
from urllib.parse import unquote

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.identity import IdentityContext, UserType
from app.services.price_query import PriceQueryService
from app.services.price_store import SqlPriceStore
from app.utils.cache import TTLCache


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_cache(request: Request) -> TTLCache:
    return request.app.state.cache


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_price_store(db: Session = Depends(get_db)):
    return SqlPriceStore(db)


def get_price_query_service(
    store=Depends(get_price_store),
    cache: TTLCache = Depends(get_cache),
    settings: Settings = Depends(get_app_settings),
) -> PriceQueryService:
    return PriceQueryService(
        store,
        cache,
        ttl_seconds=settings.price_query_cache_ttl_seconds,
        expiring_soon_days=settings.expiring_soon_days,
    )


def _header_list(raw: Optional[str]) -> frozenset[str]:
    if not raw:
        return frozenset()
    return frozenset(unquote(item).strip() for item in raw.split(",") if item.strip())


def _header_int(request: Request, name: str) -> Optional[int]:
    raw = (request.headers.get(name) or "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {name} header")


def get_identity(request: Request) -> Optional[IdentityContext]:
    """Identity forwarded by the auth gateway; None for anonymous callers."""
    user_id = _header_int(request, "X-User-Id")
    if user_id is None:
        return None
    return IdentityContext(
        user_id=user_id,
        user_type=_header_int(request, "X-User-Type") or UserType.INTERNAL.value,
        organization_id=_header_int(request, "X-Organization-Id"),
        roles=_header_list(request.headers.get("X-User-Roles")),
        permissions=_header_list(request.headers.get("X-User-Permissions")),
    )


def require_identity(identity: Optional[IdentityContext] = Depends(get_identity)) -> IdentityContext:
    if identity is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return identity


def require_permission(*codes: str):
    """Dependency allowing callers holding any of ``codes``."""

    def _check(identity: IdentityContext = Depends(require_identity)) -> IdentityContext:
        if not any(identity.has_permission(code) for code in codes):
            raise HTTPException(status_code=403, detail="Permission denied")
        return identity

    return _check
