"""API v1 router aggregator."""

from fastapi import APIRouter

from scamwatch.api.v1.analytics.routes import router as analytics_router
from scamwatch.api.v1.comparison.routes import router as comparison_router
from scamwatch.api.v1.scams.routes import router as scams_router
from scamwatch.api.v1.trends.routes import router as trends_router

api_router = APIRouter()

api_router.include_router(scams_router, prefix="/scams", tags=["Scams"])
api_router.include_router(analytics_router, prefix="/analytics", tags=["Analytics"])
api_router.include_router(comparison_router, prefix="/comparison", tags=["Comparison"])
api_router.include_router(trends_router, prefix="/trends", tags=["Trends"])
