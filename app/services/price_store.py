"""SQLAlchemy-backed price store."""
import zlib
from typing import Optional

from sqlalchemy import func, select, text
from sqlalchemy.orm import Session

from app.models import Price, PriceHistory, PriceOperation, PriceVisibleOrg, Region
from app.services.predicates import Predicate, to_sqlalchemy

PRICE_COLLECTIONS = {
    "visible_org_ids": lambda org_id: Price.visible_orgs.any(PriceVisibleOrg.organization_id == org_id),
}

PRICE_COLUMNS = (
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
    "remark",
)


def _where(predicate: Predicate):
    return to_sqlalchemy(predicate, Price, PRICE_COLLECTIONS)


def scope_lock_key(service_id: int, service_type: int) -> int:
    # Fits a signed 64-bit advisory lock key.
    return zlib.crc32(f"price-scope:{service_id}:{service_type}".encode())


class SqlPriceStore:
    def __init__(self, db: Session):
        self.db = db

    # Read side

    def find_candidates(self, predicate: Predicate) -> list[Price]:
        return list(self.db.scalars(select(Price).where(_where(predicate))).unique())

    def count(self, predicate: Predicate) -> int:
        return self.db.scalar(select(func.count(Price.id)).where(_where(predicate))) or 0

    def find_page(self, predicate: Predicate, sort: tuple[str, bool], skip: int, take: int) -> list[Price]:
        field, descending = sort
        column = getattr(Price, field)
        order = column.desc() if descending else column.asc()
        stmt = select(Price).where(_where(predicate)).order_by(order, Price.id.asc()).offset(skip).limit(take)
        return list(self.db.scalars(stmt).unique())

    def get_price(self, price_id: int) -> Optional[Price]:
        return self.db.get(Price, price_id)

    def list_history(self, price_id: int) -> list[PriceHistory]:
        stmt = (
            select(PriceHistory)
            .where(PriceHistory.price_id == price_id)
            .order_by(PriceHistory.created_at.desc(), PriceHistory.id.desc())
        )
        return list(self.db.scalars(stmt))

    def list_regions(self, parent_id: Optional[int] = None, level: Optional[int] = None) -> list[Region]:
        stmt = select(Region).where(Region.status == 1)
        if parent_id is not None:
            stmt = stmt.where(Region.parent_id == parent_id)
        if level is not None:
            stmt = stmt.where(Region.level == level)
        return list(self.db.scalars(stmt.order_by(Region.id.asc())))

    # Write side

    def lock_scope(self, service_id: int, service_type: int) -> None:
        """Serialize writers on one (service, service type) until the transaction ends."""
        if self.db.get_bind().dialect.name != "postgresql":
            return
        self.db.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": scope_lock_key(service_id, service_type)})

    def create_price(self, values: dict, visible_org_ids: list[int], operated_by: Optional[int]) -> Price:
        price = Price(**{name: values.get(name) for name in PRICE_COLUMNS}, created_by=operated_by)
        price.visible_orgs = [PriceVisibleOrg(organization_id=org_id) for org_id in sorted(set(visible_org_ids))]
        self.db.add(price)
        self.db.flush()
        self._record_history(price, PriceOperation.CREATE, operated_by)
        return price

    def update_price(self, price: Price, values: dict, visible_org_ids: list[int], operated_by: Optional[int]) -> Price:
        for name in PRICE_COLUMNS:
            setattr(price, name, values.get(name))
        wanted = set(visible_org_ids)
        price.visible_orgs = [link for link in price.visible_orgs if link.organization_id in wanted] + [
            PriceVisibleOrg(organization_id=org_id)
            for org_id in sorted(wanted - {link.organization_id for link in price.visible_orgs})
        ]
        self.db.flush()
        self._record_history(price, PriceOperation.UPDATE, operated_by)
        return price

    def delete_price(self, price: Price, operated_by: Optional[int]) -> None:
        self._record_history(price, PriceOperation.DELETE, operated_by)
        self.db.delete(price)
        self.db.flush()

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    def _record_history(self, price: Price, operation: PriceOperation, operated_by: Optional[int]) -> None:
        snapshot = {name: getattr(price, name) for name in PRICE_COLUMNS}
        self.db.add(
            PriceHistory(
                price_id=price.id,
                visible_org_ids=price.visible_org_ids,
                operation_type=operation.value,
                operated_by=operated_by,
                **snapshot,
            )
        )
