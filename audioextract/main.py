"""Audio Extract Service - FastAPI application."""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from audioextract.api.router import api_router, root_router
from audioextract.api.security import add_security_headers
from audioextract.config import Settings, settings as default_settings
from audioextract.encoder.base import Encoder
from audioextract.encoder.ffmpeg import FFmpegEncoder
from audioextract.eviction.clock import SystemClock
from audioextract.eviction.manager import EvictionManager
from audioextract.jobs.facade import JobFacade
from audioextract.jobs.orchestrator import JobOrchestrator
from audioextract.jobs.store import JobStore
from audioextract.storage.artifacts import ArtifactStore

STATIC_DIR = Path(__file__).parent / "static"


def create_app(
    settings: Optional[Settings] = None,
    encoder: Optional[Encoder] = None,
    clock=None,
) -> FastAPI:
    """Build the application. Components are created in the lifespan and
    torn down with it; tests pass their own settings, encoder and clock."""
    settings = settings or default_settings
    clock = clock or SystemClock()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown logic."""
        print(f"Starting Audio Extract Service on port {settings.port}")
        print(f"Upload dir: {settings.upload_dir}")
        print(f"Output dir: {settings.output_dir}")
        print(f"TTL: {settings.ttl_sec}s, sweep every {settings.sweep_interval_sec}s")

        store = JobStore()
        artifacts = ArtifactStore(settings.upload_dir, settings.output_dir)

        # Records from a previous process are gone; reclaim their files
        purged = artifacts.purge_stale(settings.ttl_sec)
        if purged:
            print(f"  Purged {purged} stale file(s)")

        eviction = EvictionManager(
            store,
            artifacts,
            ttl_seconds=settings.ttl_sec,
            sweep_interval_seconds=settings.sweep_interval_sec,
            clock=clock,
        )
        orchestrator = JobOrchestrator(
            store,
            encoder or FFmpegEncoder(
                ffmpeg_path=settings.ffmpeg_path,
                ffprobe_path=settings.ffprobe_path,
                audio_bitrate=settings.audio_bitrate,
            ),
            eviction,
            artifacts,
            max_concurrent_jobs=settings.max_concurrent_jobs,
            clock=clock,
        )

        app.state.settings = settings
        app.state.store = store
        app.state.artifacts = artifacts
        app.state.eviction = eviction
        app.state.orchestrator = orchestrator
        app.state.facade = JobFacade(store, artifacts)

        await eviction.start()
        await orchestrator.start()
        print("Job orchestrator started")

        yield

        # Shutdown
        print("Shutting down Audio Extract Service")
        await orchestrator.stop()
        await eviction.stop()
        # Records do not survive the process, so neither do their files
        eviction.evict_all()

    app = FastAPI(
        title="Audio Extract Service",
        description="Upload a video, get its audio track back as MP3",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    add_security_headers(app)

    app.include_router(root_router)  # GET /health
    app.include_router(api_router)  # /api/upload, /api/status, /api/download

    # Browser UI; must be mounted last since it matches every path
    if STATIC_DIR.is_dir():
        app.mount("/", StaticFiles(directory=str(STATIC_DIR), html=True), name="static")

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=default_settings.port)


if __name__ == "__main__":
    run()
