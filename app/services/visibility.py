from typing import Optional

from app.core.identity import IdentityContext
from app.models.price import PriceType, VisibilityType
from app.services.predicates import NEVER, Contains, Eq, Predicate, and_, or_


def price_type_predicate(identity: IdentityContext) -> Optional[Predicate]:
    """Restrict price_type by the caller's view permissions.

    Returns None when both types are visible and NEVER when neither is.
    """
    if identity.can_view_external and identity.can_view_internal:
        return None
    if identity.can_view_internal:
        return Eq("price_type", PriceType.INTERNAL.value)
    if identity.can_view_external:
        return Eq("price_type", PriceType.EXTERNAL.value)
    return NEVER


def organization_scope_predicate(identity: IdentityContext) -> Optional[Predicate]:
    if identity.sees_all_organizations:
        return None

    org_id = identity.organization_id
    return or_(
        Eq("visibility_type", VisibilityType.ALL_ORGANIZATIONS.value),
        and_(
            Eq("visibility_type", VisibilityType.LISTED_ORGANIZATIONS.value),
            Contains("visible_org_ids", org_id),
        ) if org_id is not None else None,
        and_(
            Eq("visibility_type", VisibilityType.OWNER_ONLY.value),
            Eq("organization_id", org_id),
        ) if org_id is not None else None,
    )


def build_visibility_predicate(identity: Optional[IdentityContext]) -> Predicate:
    """Filter every price listing must AND in for the given caller."""
    if identity is None:
        return and_(
            Eq("price_type", PriceType.EXTERNAL.value),
            Eq("visibility_type", VisibilityType.ALL_ORGANIZATIONS.value),
        )
    return and_(price_type_predicate(identity), organization_scope_predicate(identity))
