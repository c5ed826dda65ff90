from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class PriceQueryParams(BaseModel):
    service_type: Optional[int] = None
    service_id: Optional[int] = None
    origin_region_id: Optional[int] = None
    destination_region_id: Optional[int] = None
    weight: Optional[Decimal] = None
    volume: Optional[Decimal] = None
    query_date: Optional[date] = None
    currency: Optional[str] = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1, le=200)
    sort_field: str = "price"
    sort_order: str = "asc"

    price_min: Optional[Decimal] = None
    price_max: Optional[Decimal] = None
    validity_start: Optional[date] = None
    validity_end: Optional[date] = None
    visibility_type: Optional[int] = None
    is_expiring_soon: bool = False
    organization_id: Optional[int] = None
    created_by: Optional[int] = None


class PriceWrite(BaseModel):
    """Raw price payload; field checks happen in the validator so every error is reported."""

    model_config = ConfigDict(extra="ignore")

    service_id: Any = None
    service_type: Any = None
    origin_region_id: Optional[int] = None
    destination_region_id: Optional[int] = None
    weight_start: Any = None
    weight_end: Any = None
    volume_start: Any = None
    volume_end: Any = None
    price: Any = None
    currency: Optional[str] = None
    price_unit: Optional[str] = None
    effective_date: Any = None
    expiry_date: Any = None
    is_current: bool = True
    remark: Optional[str] = None
    organization_id: Optional[int] = None
    # None keeps the stored value on update; create falls back to 1 / 1 / [].
    price_type: Optional[int] = None
    visibility_type: Optional[int] = None
    visible_org_ids: Optional[list[int]] = None


class PriceOut(BaseModel):
    id: int
    service_id: int
    service_type: int
    origin_region_id: Optional[int] = None
    destination_region_id: Optional[int] = None
    origin_region_name: Optional[str] = None
    destination_region_name: Optional[str] = None
    weight_start: Optional[Decimal] = None
    weight_end: Optional[Decimal] = None
    volume_start: Optional[Decimal] = None
    volume_end: Optional[Decimal] = None
    price: Decimal
    currency: str
    price_unit: str
    effective_date: date
    expiry_date: Optional[date] = None
    is_current: bool
    price_type: int
    visibility_type: int
    visible_org_ids: list[int] = Field(default_factory=list)
    organization_id: Optional[int] = None
    created_by: Optional[int] = None
    remark: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PricePageOut(BaseModel):
    current: int
    page_size: int
    total: int


class PriceQueryResponse(BaseModel):
    records: list[dict]
    pagination: PricePageOut


class PriceHistoryOut(BaseModel):
    id: int
    price_id: int
    operation_type: str
    operated_by: Optional[int] = None
    price: Decimal
    currency: str
    price_unit: str
    effective_date: date
    expiry_date: Optional[date] = None
    is_current: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ValidationReport(BaseModel):
    is_valid: bool
    errors: list[str]
    conflicts: list[dict] = Field(default_factory=list)


class RegionOut(BaseModel):
    id: int
    name: str
    code: Optional[str] = None
    parent_id: Optional[int] = None
    level: int

    model_config = ConfigDict(from_attributes=True)
