"""Aggregate API routers."""

from fastapi import APIRouter
from audioextract.api.health import router as health_router
from audioextract.api.jobs import router as jobs_router
from audioextract.api.upload import router as upload_router

api_router = APIRouter(prefix="/api")
api_router.include_router(upload_router, tags=["upload"])
api_router.include_router(jobs_router, tags=["jobs"])

# GET /health lives at the root
root_router = APIRouter()
root_router.include_router(health_router, tags=["health"])
