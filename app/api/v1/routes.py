from fastapi import APIRouter
from app.api.v1.endpoints import prices, regions

router = APIRouter()

router.include_router(prices.router, prefix="/prices", tags=["prices"])
router.include_router(regions.router, prefix="/regions", tags=["regions"])
