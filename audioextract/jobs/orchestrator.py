"""In-process job orchestrator using asyncio.

Drives each job queued -> processing -> done/error through the encoder and
hands terminal jobs to the EvictionManager. Transcoding runs in an external
process, so the event loop is only busy while applying events.
No external dependencies (Redis, Celery) needed.
"""

import asyncio
from typing import List, Optional

from audioextract.encoder.base import (
    Encoder,
    EncoderEvent,
    FailureEvent,
    ProgressEvent,
    SuccessEvent,
)
from audioextract.eviction.clock import SystemClock
from audioextract.eviction.manager import EvictionManager
from audioextract.jobs.models import Job, JobStatus
from audioextract.jobs.store import JobStore
from audioextract.storage.artifacts import ArtifactStore


class JobOrchestrator:
    """Local async job queue. Runs up to max_concurrent_jobs encoders at once."""

    def __init__(
        self,
        store: JobStore,
        encoder: Encoder,
        eviction: EvictionManager,
        artifacts: ArtifactStore,
        max_concurrent_jobs: int = 1,
        clock=None,
    ):
        self._store = store
        self._encoder = encoder
        self._eviction = eviction
        self._artifacts = artifacts
        self._clock = clock or SystemClock()
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._worker_count = max(1, max_concurrent_jobs)
        self._tasks: List[asyncio.Task] = []
        self._running = False

    def create_job(
        self,
        input_path: str,
        output_path: str,
        job_id: Optional[str] = None,
    ) -> Job:
        """Register a queued job and schedule it. Never starts work inline."""
        fields = {"id": job_id} if job_id else {}
        job = Job(
            input_path=input_path,
            output_path=output_path,
            created_at=self._clock.now(),
            **fields,
        )
        self._store.create(job)
        self._queue.put_nowait(job.id)
        return job

    async def start(self) -> None:
        self._running = True
        self._tasks = [
            asyncio.create_task(self._worker_loop())
            for _ in range(self._worker_count)
        ]

    async def stop(self) -> None:
        self._running = False
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []

    async def _worker_loop(self) -> None:
        """Take jobs from the queue and run them to a terminal state."""
        while self._running:
            try:
                job_id = await self._queue.get()
            except asyncio.CancelledError:
                break

            try:
                await self.run_job(job_id)
            except Exception as e:
                # Never let one job take the worker down
                print(f"Worker error on job {job_id}: {type(e).__name__}: {e}")
            finally:
                self._queue.task_done()

    async def run_job(self, job_id: str) -> Optional[Job]:
        """Run one queued job through the encoder. Returns the finished job."""
        job = self._store.get(job_id)
        if job is None or job.status != JobStatus.QUEUED:
            return None

        job.start(self._clock.now())
        try:
            outcome = await self._consume_events(job)
        except Exception as e:
            outcome = FailureEvent(reason=str(e) or type(e).__name__)

        if isinstance(outcome, SuccessEvent):
            job.complete(self._clock.now())
            print(f"Job {job.id} completed")
        else:
            # Only done jobs may have an output file on disk
            self._discard_output(job)
            job.fail(outcome.reason, self._clock.now())
            print(f"Job {job.id} failed: {job.error_message}")

        self._eviction.arm(job)
        return job

    def _discard_output(self, job: Job) -> None:
        try:
            self._artifacts.remove(job.output_path)
        except OSError as exc:
            print(f"Cleanup error for job {job.id} ({job.output_path}): {exc}")

    async def _consume_events(self, job: Job) -> EncoderEvent:
        """Apply progress events in order; return the terminal event."""
        events = self._encoder.transcode(job.input_path, job.output_path)
        try:
            async for event in events:
                if isinstance(event, ProgressEvent):
                    job.report_progress(event.percent)
                elif isinstance(event, (SuccessEvent, FailureEvent)):
                    return event
        finally:
            aclose = getattr(events, "aclose", None)
            if aclose is not None:
                await aclose()
        return FailureEvent(reason="Encoder ended without a result")

    async def join(self) -> None:
        """Wait until every queued job has been processed."""
        await self._queue.join()
