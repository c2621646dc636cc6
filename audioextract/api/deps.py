"""Request-scoped accessors for the components built in the app lifespan."""

from fastapi import HTTPException, Request

from audioextract.config import Settings
from audioextract.eviction.manager import EvictionManager
from audioextract.jobs.facade import JobFacade
from audioextract.jobs.orchestrator import JobOrchestrator
from audioextract.jobs.store import JobStore
from audioextract.storage.artifacts import ArtifactStore


def _component(request: Request, name: str):
    component = getattr(request.app.state, name, None)
    if component is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    return component


def get_settings(request: Request) -> Settings:
    return _component(request, "settings")


def get_store(request: Request) -> JobStore:
    return _component(request, "store")


def get_artifacts(request: Request) -> ArtifactStore:
    return _component(request, "artifacts")


def get_orchestrator(request: Request) -> JobOrchestrator:
    return _component(request, "orchestrator")


def get_eviction(request: Request) -> EvictionManager:
    return _component(request, "eviction")


def get_facade(request: Request) -> JobFacade:
    return _component(request, "facade")
