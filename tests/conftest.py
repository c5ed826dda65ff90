import os
from datetime import date
from decimal import Decimal
from itertools import count
from types import SimpleNamespace

import pytest


def _set_test_env() -> None:
    defaults = {
        "APP_NAME": "Freight Pricing Test",
        "ENVIRONMENT": "test",
        "DATABASE_URL": "sqlite://",
        "AUTO_CREATE_TABLES": "false",
        "PRICE_QUERY_CACHE_TTL_SECONDS": "300",
        "CORS_ORIGINS": "http://localhost:5173,http://localhost:3000",
    }
    for key, value in defaults.items():
        os.environ.setdefault(key, value)


_set_test_env()

from app.services.predicates import evaluate  # noqa: E402


def make_price(**overrides):
    values = {
        "id": 1,
        "service_id": 1,
        "service_type": 1,
        "origin_region_id": None,
        "destination_region_id": None,
        "origin_region_name": None,
        "destination_region_name": None,
        "weight_start": Decimal("0"),
        "weight_end": Decimal("10"),
        "volume_start": None,
        "volume_end": None,
        "price": Decimal("100"),
        "currency": "CNY",
        "price_unit": "kg",
        "effective_date": date(2025, 1, 1),
        "expiry_date": date(2025, 12, 31),
        "is_current": True,
        "price_type": 1,
        "visibility_type": 1,
        "visible_org_ids": [],
        "organization_id": None,
        "created_by": 1,
        "remark": None,
        "created_at": None,
        "updated_at": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class FakePriceStore:
    """In-memory store that answers predicates by evaluating them per record."""

    def __init__(self, prices=(), regions=()):
        self.prices = list(prices)
        self.regions = list(regions)
        self.history = []
        self.calls = []
        self.locked = []
        self.commits = 0
        self.rollbacks = 0
        self._ids = count(max([p.id for p in self.prices], default=0) + 1)

    def _matching(self, predicate):
        return [price for price in self.prices if evaluate(predicate, price)]

    def find_candidates(self, predicate):
        self.calls.append("find_candidates")
        return self._matching(predicate)

    def count(self, predicate):
        self.calls.append("count")
        return len(self._matching(predicate))

    def find_page(self, predicate, sort, skip, take):
        self.calls.append("find_page")
        field, descending = sort
        rows = sorted(self._matching(predicate), key=lambda p: p.id)
        rows.sort(key=lambda p: (getattr(p, field) is None, getattr(p, field)), reverse=descending)
        return rows[skip:skip + take]

    def get_price(self, price_id):
        self.calls.append("get_price")
        return next((price for price in self.prices if price.id == price_id), None)

    def list_history(self, price_id):
        return [entry for entry in self.history if entry.price_id == price_id]

    def list_regions(self, parent_id=None, level=None):
        self.calls.append("list_regions")
        return [
            region
            for region in self.regions
            if (parent_id is None or region.parent_id == parent_id) and (level is None or region.level == level)
        ]

    def lock_scope(self, service_id, service_type):
        self.locked.append((service_id, service_type))

    def create_price(self, values, visible_org_ids, operated_by):
        price = make_price(id=next(self._ids), **values, visible_org_ids=list(visible_org_ids), created_by=operated_by)
        self.prices.append(price)
        self._record(price, "create", operated_by)
        return price

    def update_price(self, price, values, visible_org_ids, operated_by):
        for name, value in values.items():
            setattr(price, name, value)
        price.visible_org_ids = list(visible_org_ids)
        self._record(price, "update", operated_by)
        return price

    def delete_price(self, price, operated_by):
        self._record(price, "delete", operated_by)
        self.prices.remove(price)

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def _record(self, price, operation, operated_by):
        self.history.append(
            SimpleNamespace(
                id=len(self.history) + 1,
                price_id=price.id,
                operation_type=operation,
                operated_by=operated_by,
                price=price.price,
                currency=price.currency,
                price_unit=price.price_unit,
                effective_date=price.effective_date,
                expiry_date=price.expiry_date,
                is_current=price.is_current,
                created_at=None,
            )
        )


class FakeClock:
    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def price_factory():
    return make_price


@pytest.fixture
def store_factory():
    return FakePriceStore


@pytest.fixture
def clock():
    return FakeClock()
