import enum
from sqlalchemy import Boolean, Column, Date, Index, Integer, Numeric, SmallInteger, String, Text, JSON
from app.core.database import Base
from app.models.base import TimestampMixin


class PriceOperation(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    IMPORT = "import"


class PriceHistory(Base, TimestampMixin):
    __tablename__ = "price_history"

    id = Column(Integer, primary_key=True, index=True)
    # No FK: history outlives deleted prices.
    price_id = Column(Integer, nullable=False)
    service_id = Column(Integer, nullable=False)
    service_type = Column(SmallInteger, nullable=False)
    origin_region_id = Column(Integer, nullable=True)
    destination_region_id = Column(Integer, nullable=True)
    weight_start = Column(Numeric(12, 3), nullable=True)
    weight_end = Column(Numeric(12, 3), nullable=True)
    volume_start = Column(Numeric(12, 3), nullable=True)
    volume_end = Column(Numeric(12, 3), nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(8), nullable=False)
    price_unit = Column(String(16), nullable=False)
    effective_date = Column(Date, nullable=False)
    expiry_date = Column(Date, nullable=True)
    is_current = Column(Boolean, nullable=False)
    price_type = Column(SmallInteger, nullable=False)
    visibility_type = Column(SmallInteger, nullable=False)
    visible_org_ids = Column(JSON, nullable=True)
    organization_id = Column(Integer, nullable=True)
    remark = Column(Text, nullable=True)
    operation_type = Column(String(16), nullable=False)
    operated_by = Column(Integer, nullable=True)


Index("ix_price_history_price_id", PriceHistory.price_id, PriceHistory.created_at)
