from datetime import date
from decimal import Decimal

import pytest

from app.core.identity import IdentityContext, ROLE_ADMIN
from app.schemas.price import PriceQueryParams
from app.services.price_query import PriceQueryService, build_cache_key, invalidate_price_queries
from app.utils.cache import TTLCache

TODAY = date(2025, 6, 1)


def _identity(permissions=("price:view",), roles=(), organization_id=10):
    return IdentityContext(
        user_id=1,
        user_type=1,
        organization_id=organization_id,
        roles=frozenset(roles),
        permissions=frozenset(permissions),
    )


@pytest.fixture
def cache(clock):
    return TTLCache(clock=clock)


@pytest.fixture
def make_service(cache):
    def _make(store):
        return PriceQueryService(store, cache, ttl_seconds=300, today=lambda: TODAY)

    return _make


def test_caller_without_view_permission_gets_empty_page_without_store_access(make_service, store_factory, price_factory):
    store = store_factory([price_factory()])
    result = make_service(store).query(PriceQueryParams(page=2, page_size=5), _identity(permissions=[]))

    assert result == {"records": [], "pagination": {"current": 2, "page_size": 5, "total": 0}}
    assert store.calls == []


def test_anonymous_query_never_returns_internal_prices(make_service, store_factory, price_factory):
    store = store_factory([
        price_factory(id=1, price_type=1),
        price_factory(id=2, price_type=2),
        price_factory(id=3, price_type=1, visibility_type=3, organization_id=10),
    ])
    result = make_service(store).query(PriceQueryParams(), None)

    assert [record["id"] for record in result["records"]] == [1]
    assert result["pagination"]["total"] == 1


def test_repeated_query_is_served_from_cache(make_service, store_factory, price_factory):
    store = store_factory([price_factory()])
    service = make_service(store)
    params = PriceQueryParams(service_id=1)

    first = service.query(params, _identity())
    calls_after_first = list(store.calls)
    second = service.query(params, _identity())

    assert second == first
    assert store.calls == calls_after_first


def test_non_price_permissions_share_cache_entries(make_service, store_factory, price_factory):
    store = store_factory([price_factory()])
    service = make_service(store)

    service.query(PriceQueryParams(), _identity(permissions=["price:view"]))
    calls = len(store.calls)
    service.query(PriceQueryParams(), _identity(permissions=["price:view", "user:edit"]))

    assert len(store.calls) == calls


def test_admin_results_are_not_shared_with_regular_users(make_service, store_factory, price_factory):
    store = store_factory([
        price_factory(id=1),
        price_factory(id=2, visibility_type=3, organization_id=99),
    ])
    service = make_service(store)

    admin_view = service.query(PriceQueryParams(), _identity(roles=[ROLE_ADMIN]))
    user_view = service.query(PriceQueryParams(), _identity())

    assert [r["id"] for r in admin_view["records"]] == [1, 2]
    assert [r["id"] for r in user_view["records"]] == [1]


def test_cached_result_expires(make_service, store_factory, price_factory, clock):
    store = store_factory([price_factory()])
    service = make_service(store)

    service.query(PriceQueryParams(), _identity())
    calls = len(store.calls)
    clock.advance(301)
    service.query(PriceQueryParams(), _identity())

    assert len(store.calls) == calls * 2


def test_invalidation_forces_recompute(make_service, store_factory, price_factory, cache):
    store = store_factory([price_factory()])
    service = make_service(store)

    service.query(PriceQueryParams(), _identity())
    store.prices.append(price_factory(id=2, service_id=2))
    assert invalidate_price_queries(cache) == 1

    result = service.query(PriceQueryParams(), _identity())
    assert result["pagination"]["total"] == 2


def test_validity_on_query_date(make_service, store_factory, price_factory):
    store = store_factory([
        price_factory(id=1),
        price_factory(id=2, effective_date=date(2025, 7, 1), expiry_date=None),
        price_factory(id=3, effective_date=date(2024, 1, 1), expiry_date=date(2025, 5, 31)),
        price_factory(id=4, effective_date=date(2024, 1, 1), expiry_date=None),
        price_factory(id=5, is_current=False),
    ])
    result = make_service(store).query(PriceQueryParams(), _identity())
    assert sorted(r["id"] for r in result["records"]) == [1, 4]

    later = make_service(store).query(PriceQueryParams(query_date=date(2025, 8, 1)), _identity())
    assert sorted(r["id"] for r in later["records"]) == [1, 2, 4]


def test_weight_lookup_treats_null_bounds_as_open(make_service, store_factory, price_factory):
    store = store_factory([
        price_factory(id=1, weight_start=Decimal("0"), weight_end=Decimal("10")),
        price_factory(id=2, weight_start=Decimal("10"), weight_end=Decimal("20")),
        price_factory(id=3, weight_start=None, weight_end=None),
        price_factory(id=4, weight_start=Decimal("12"), weight_end=None),
    ])
    result = make_service(store).query(PriceQueryParams(weight=Decimal("15")), _identity())
    assert sorted(r["id"] for r in result["records"]) == [2, 3, 4]


def test_volume_lookup(make_service, store_factory, price_factory):
    store = store_factory([
        price_factory(id=1, volume_start=Decimal("0"), volume_end=Decimal("1")),
        price_factory(id=2, volume_start=Decimal("1.5"), volume_end=Decimal("3")),
    ])
    result = make_service(store).query(PriceQueryParams(volume=Decimal("2")), _identity())
    assert [r["id"] for r in result["records"]] == [2]


def test_expiring_soon_filter(make_service, store_factory, price_factory):
    store = store_factory([
        price_factory(id=1, expiry_date=date(2025, 6, 20)),
        price_factory(id=2, expiry_date=date(2025, 12, 31)),
        price_factory(id=3, expiry_date=None),
    ])
    result = make_service(store).query(PriceQueryParams(is_expiring_soon=True), _identity())
    assert [r["id"] for r in result["records"]] == [1]


def test_price_bounds_and_scope_filters(make_service, store_factory, price_factory):
    store = store_factory([
        price_factory(id=1, price=Decimal("50"), origin_region_id=1, created_by=7),
        price_factory(id=2, price=Decimal("150"), origin_region_id=1, created_by=7),
        price_factory(id=3, price=Decimal("120"), origin_region_id=2, created_by=7),
        price_factory(id=4, price=Decimal("120"), origin_region_id=1, created_by=8),
    ])
    params = PriceQueryParams(price_min=Decimal("100"), price_max=Decimal("200"), origin_region_id=1, created_by=7)
    result = make_service(store).query(params, _identity())
    assert [r["id"] for r in result["records"]] == [2]


def test_sorting_and_paging(make_service, store_factory, price_factory):
    store = store_factory([
        price_factory(id=i, service_id=i, price=Decimal(p)) for i, p in enumerate(["30", "10", "20", "40"], start=1)
    ])
    service = make_service(store)

    asc = service.query(PriceQueryParams(page_size=2), _identity())
    desc = service.query(PriceQueryParams(page=2, page_size=2, sort_order="desc"), _identity())
    unknown = service.query(PriceQueryParams(sort_field="remark", sort_order="desc"), _identity())

    assert [r["id"] for r in asc["records"]] == [2, 3]
    assert asc["pagination"] == {"current": 1, "page_size": 2, "total": 4}
    assert [r["id"] for r in desc["records"]] == [3, 2]
    assert [r["id"] for r in unknown["records"]] == [2, 3, 1, 4]


def test_records_are_enriched(make_service, store_factory, price_factory):
    store = store_factory([price_factory()])
    record = make_service(store).query(PriceQueryParams(), _identity())["records"][0]
    assert record["price_display"] == "100 CNY/kg"
    assert record["weight_range"] == "0 - 10"
    assert record["price_type_display"] == "External price"


def test_cache_key_ignores_irrelevant_permissions():
    params = PriceQueryParams(service_id=1)
    a = build_cache_key(params, TODAY, _identity(permissions=["price:view", "log:view"]))
    b = build_cache_key(params, TODAY, _identity(permissions=["price:view"]))
    c = build_cache_key(params, TODAY, _identity(permissions=["price:view:external"]))
    assert a == b
    assert a != c
    assert a.startswith("price_query:")


@pytest.mark.parametrize("anonymous_first", [True, False])
def test_anonymous_and_permissionless_callers_never_share_results(
    make_service, store_factory, price_factory, anonymous_first
):
    store = store_factory([price_factory(id=1)])
    service = make_service(store)
    permissionless = IdentityContext(user_id=5, user_type=3, permissions=frozenset())

    if anonymous_first:
        anonymous = service.query(PriceQueryParams(), None)
        restricted = service.query(PriceQueryParams(), permissionless)
    else:
        restricted = service.query(PriceQueryParams(), permissionless)
        anonymous = service.query(PriceQueryParams(), None)

    assert anonymous["pagination"]["total"] == 1
    assert restricted["pagination"]["total"] == 0
