import enum
from sqlalchemy import (
    Boolean,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.base import TimestampMixin


class ServiceType(int, enum.Enum):
    TRADITIONAL_LOGISTICS = 1
    FBA_FIRST_LEG = 2
    VALUE_ADDED = 3


class PriceType(int, enum.Enum):
    EXTERNAL = 1
    INTERNAL = 2


class VisibilityType(int, enum.Enum):
    ALL_ORGANIZATIONS = 1
    LISTED_ORGANIZATIONS = 2
    OWNER_ONLY = 3


class Price(Base, TimestampMixin):
    __tablename__ = "prices"

    id = Column(Integer, primary_key=True, index=True)
    service_id = Column(Integer, nullable=False)
    service_type = Column(SmallInteger, nullable=False)
    origin_region_id = Column(Integer, ForeignKey("regions.id"), nullable=True)
    destination_region_id = Column(Integer, ForeignKey("regions.id"), nullable=True)

    weight_start = Column(Numeric(12, 3), nullable=True)
    weight_end = Column(Numeric(12, 3), nullable=True)
    volume_start = Column(Numeric(12, 3), nullable=True)
    volume_end = Column(Numeric(12, 3), nullable=True)

    price = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(8), nullable=False, default="CNY")
    price_unit = Column(String(16), nullable=False)

    effective_date = Column(Date, nullable=False)
    expiry_date = Column(Date, nullable=True)
    is_current = Column(Boolean, nullable=False, default=True)

    price_type = Column(SmallInteger, nullable=False, default=PriceType.EXTERNAL.value)
    visibility_type = Column(SmallInteger, nullable=False, default=VisibilityType.ALL_ORGANIZATIONS.value)
    organization_id = Column(Integer, nullable=True)

    created_by = Column(Integer, nullable=True)
    remark = Column(Text, nullable=True)

    origin_region = relationship("Region", foreign_keys=[origin_region_id], lazy="joined")
    destination_region = relationship("Region", foreign_keys=[destination_region_id], lazy="joined")
    visible_orgs = relationship(
        "PriceVisibleOrg",
        back_populates="price",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def visible_org_ids(self) -> list[int]:
        return sorted(link.organization_id for link in self.visible_orgs)

    @property
    def origin_region_name(self):
        return self.origin_region.name if self.origin_region is not None else None

    @property
    def destination_region_name(self):
        return self.destination_region.name if self.destination_region is not None else None


class PriceVisibleOrg(Base):
    __tablename__ = "price_visible_orgs"
    __table_args__ = (UniqueConstraint("price_id", "organization_id", name="uq_price_visible_orgs_price_org"),)

    id = Column(Integer, primary_key=True)
    price_id = Column(Integer, ForeignKey("prices.id", ondelete="CASCADE"), nullable=False)
    organization_id = Column(Integer, nullable=False, index=True)

    price = relationship("Price", back_populates="visible_orgs")


Index(
    "ix_prices_scope_current",
    Price.service_id,
    Price.service_type,
    Price.origin_region_id,
    Price.destination_region_id,
    Price.is_current,
)
Index("ix_prices_effective_expiry", Price.effective_date, Price.expiry_date)
Index("ix_prices_type_visibility", Price.price_type, Price.visibility_type)
