import pytest

from app.core.identity import IdentityContext, ROLE_ADMIN, ROLE_SUPER_ADMIN
from app.services.predicates import And, Eq, evaluate, is_never
from app.services.visibility import build_visibility_predicate


def _identity(permissions=(), roles=(), organization_id=10):
    return IdentityContext(
        user_id=1,
        user_type=1,
        organization_id=organization_id,
        roles=frozenset(roles),
        permissions=frozenset(permissions),
    )


def _visible(pred, prices):
    return [price.id for price in prices if evaluate(pred, price)]


@pytest.fixture
def catalog(price_factory):
    return [
        price_factory(id=1, price_type=1, visibility_type=1),
        price_factory(id=2, price_type=2, visibility_type=1),
        price_factory(id=3, price_type=1, visibility_type=2, visible_org_ids=[10, 30]),
        price_factory(id=4, price_type=1, visibility_type=2, visible_org_ids=[1, 100]),
        price_factory(id=5, price_type=1, visibility_type=3, organization_id=10),
        price_factory(id=6, price_type=1, visibility_type=3, organization_id=11),
        price_factory(id=7, price_type=2, visibility_type=3, organization_id=10),
    ]


def test_anonymous_sees_public_external_only(catalog):
    pred = build_visibility_predicate(None)
    assert pred == And((Eq("price_type", 1), Eq("visibility_type", 1)))
    assert _visible(pred, catalog) == [1]


def test_no_view_permission_matches_nothing(catalog):
    pred = build_visibility_predicate(_identity(permissions=["price:create", "user:view"]))
    assert is_never(pred)
    assert _visible(pred, catalog) == []


def test_external_permission_limits_price_type(catalog):
    pred = build_visibility_predicate(_identity(permissions=["price:view:external"]))
    assert _visible(pred, catalog) == [1, 3, 5]


def test_internal_permission_limits_price_type(catalog):
    pred = build_visibility_predicate(_identity(permissions=["price:view:internal"]))
    assert _visible(pred, catalog) == [2, 7]


def test_generic_view_grants_both_types(catalog):
    pred = build_visibility_predicate(_identity(permissions=["price:view"]))
    assert _visible(pred, catalog) == [1, 2, 3, 5, 7]


def test_listed_org_membership_is_exact(catalog):
    # Organization 10 must not match the list [1, 100].
    pred = build_visibility_predicate(_identity(permissions=["price:view"], organization_id=10))
    assert 4 not in _visible(pred, catalog)
    pred = build_visibility_predicate(_identity(permissions=["price:view"], organization_id=100))
    assert 4 in _visible(pred, catalog)


@pytest.mark.parametrize(
    "permissions,roles",
    [
        (["price:view", "price:manage:org"], []),
        (["price:view"], [ROLE_SUPER_ADMIN]),
        (["price:view"], [ROLE_ADMIN]),
    ],
)
def test_org_managers_and_admins_see_every_scope(catalog, permissions, roles):
    pred = build_visibility_predicate(_identity(permissions=permissions, roles=roles))
    assert _visible(pred, catalog) == [1, 2, 3, 4, 5, 6, 7]


def test_admin_role_does_not_bypass_price_type(catalog):
    pred = build_visibility_predicate(_identity(permissions=["price:view:external"], roles=[ROLE_ADMIN]))
    assert _visible(pred, catalog) == [1, 3, 4, 5, 6]


def test_caller_without_organization_sees_public_only(catalog):
    pred = build_visibility_predicate(_identity(permissions=["price:view"], organization_id=None))
    assert _visible(pred, catalog) == [1, 2]
