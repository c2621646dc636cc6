"""Time-based reclamation of finished jobs.

Two mechanisms share one scheduler:
  - a per-job deadline armed when a job reaches done/error
  - a periodic sweep over the whole store that evicts anything past its
    expires_at, in case a deadline never fired

Both end in evict(), which is idempotent: whichever gets there first removes
the files and the record, the other finds nothing to do.
"""

import asyncio
import heapq
import itertools
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from audioextract.eviction.clock import SystemClock
from audioextract.jobs.errors import InvalidStateTransitionError
from audioextract.jobs.models import Job
from audioextract.jobs.store import JobStore
from audioextract.storage.artifacts import ArtifactStore


@dataclass
class ScheduledEviction:
    """Handle stored on Job.cleanup_handle for a pending deadline."""
    job_id: str
    deadline: datetime
    cancelled: bool = False
    fired: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class EvictionManager:
    """Deletes a job's files and record once its TTL has elapsed."""

    def __init__(
        self,
        store: JobStore,
        artifacts: ArtifactStore,
        ttl_seconds: float = 3600,
        sweep_interval_seconds: float = 600,
        clock=None,
    ):
        self._store = store
        self._artifacts = artifacts
        self._ttl = timedelta(seconds=ttl_seconds)
        self._sweep_interval = timedelta(seconds=sweep_interval_seconds)
        self._clock = clock or SystemClock()
        self._heap: List[Tuple[datetime, int, ScheduledEviction]] = []
        self._seq = itertools.count()
        self._wakeup: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None
        self._next_sweep: Optional[datetime] = None

    @property
    def ttl_seconds(self) -> float:
        return self._ttl.total_seconds()

    def arm(self, job: Job) -> ScheduledEviction:
        """Schedule eviction of a terminal job, ttl from now. Arms at most once."""
        if not job.status.is_terminal:
            raise InvalidStateTransitionError(job.id, job.status.value, "evicted")
        if job.cleanup_handle is not None:
            return job.cleanup_handle

        deadline = self._clock.now() + self._ttl
        handle = ScheduledEviction(job_id=job.id, deadline=deadline)
        job.expires_at = deadline
        job.cleanup_handle = handle
        heapq.heappush(self._heap, (deadline, next(self._seq), handle))
        if self._wakeup is not None:
            self._wakeup.set()
        return handle

    def evict(self, job_id: str) -> bool:
        """Remove a job's files, then its record.

        Returns True only for the call that removed the record. Disk errors
        are logged and do not keep the record alive.
        """
        job = self._store.get(job_id)
        if job is None:
            return False

        for path in (job.input_path, job.output_path):
            try:
                self._artifacts.remove(path)
            except OSError as exc:
                print(f"Cleanup error for job {job_id} ({path}): {exc}")

        if job.cleanup_handle is not None:
            job.cleanup_handle.cancel()
        self._store.delete(job_id)
        return True

    def run_due(self, now: Optional[datetime] = None) -> int:
        """Fire every per-job deadline at or before now. Returns jobs evicted."""
        now = now or self._clock.now()
        evicted = 0
        while self._heap and self._heap[0][0] <= now:
            _, _, handle = heapq.heappop(self._heap)
            if handle.cancelled:
                continue
            handle.fired = True
            if self.evict(handle.job_id):
                evicted += 1
        return evicted

    def sweep(self, now: Optional[datetime] = None) -> int:
        """Evict every stored job whose expires_at has passed. Returns jobs evicted."""
        now = now or self._clock.now()
        evicted: List[str] = []

        def visit(job: Job) -> None:
            if job.expires_at is not None and job.expires_at <= now:
                if self.evict(job.id):
                    evicted.append(job.id)

        self._store.for_each(visit)
        if evicted:
            print(f"Sweep evicted {len(evicted)} expired job(s)")
        return len(evicted)

    def evict_all(self) -> int:
        """Evict every job regardless of expiry. Used at shutdown."""
        return sum(1 for job in self._store.snapshot() if self.evict(job.id))

    def pending_count(self) -> int:
        return sum(1 for _, _, handle in self._heap if not handle.cancelled)

    async def start(self) -> None:
        self._wakeup = asyncio.Event()
        self._next_sweep = self._clock.now() + self._sweep_interval
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        for _, _, handle in self._heap:
            handle.cancel()
        self._heap.clear()

    async def _run(self) -> None:
        """Sleep until the next deadline or sweep, whichever is earlier."""
        while True:
            self._wakeup.clear()
            now = self._clock.now()
            try:
                self.run_due(now)
                if now >= self._next_sweep:
                    self.sweep(now)
                    self._next_sweep = now + self._sweep_interval
            except Exception as e:
                print(f"Eviction loop error: {type(e).__name__}: {e}")

            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=self._seconds_until_next(now))
            except asyncio.TimeoutError:
                pass

    def _seconds_until_next(self, now: datetime) -> float:
        wake_at = self._next_sweep
        while self._heap and self._heap[0][2].cancelled:
            heapq.heappop(self._heap)
        if self._heap and self._heap[0][0] < wake_at:
            wake_at = self._heap[0][0]
        return max(0.0, (wake_at - now).total_seconds())
