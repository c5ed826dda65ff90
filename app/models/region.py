from sqlalchemy import Column, Integer, String, ForeignKey, Index
from app.core.database import Base
from app.models.base import TimestampMixin


class Region(Base, TimestampMixin):
    __tablename__ = "regions"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(128), nullable=False)
    code = Column(String(32), nullable=True, unique=True)
    parent_id = Column(Integer, ForeignKey("regions.id"), nullable=True)
    level = Column(Integer, nullable=False, default=1)
    status = Column(Integer, nullable=False, default=1)


Index("ix_regions_parent_level", Region.parent_id, Region.level)
