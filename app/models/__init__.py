from app.models.region import Region
from app.models.price import Price, PriceVisibleOrg, PriceType, ServiceType, VisibilityType
from app.models.price_history import PriceHistory, PriceOperation

__all__ = [
    "Region",
    "Price",
    "PriceVisibleOrg",
    "PriceType",
    "ServiceType",
    "VisibilityType",
    "PriceHistory",
    "PriceOperation",
]
