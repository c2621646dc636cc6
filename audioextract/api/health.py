"""Health check endpoint."""

from fastapi import APIRouter, Depends

from audioextract.api.deps import get_eviction, get_store

router = APIRouter()


@router.get("/health")
async def health_check(store=Depends(get_store), eviction=Depends(get_eviction)):
    """Liveness probe with job counts."""
    return {
        "ok": True,
        "jobs": len(store),
        "pending_evictions": eviction.pending_count(),
    }
