"""In-memory job registry.

The single source of truth for job state. Only the orchestrator and the
eviction manager mutate it. Everything runs on one event loop, so each
method is atomic with respect to other callbacks and no locking is needed.
Nothing here survives a restart.
"""

from typing import Callable, Dict, Iterator, List, Optional

from audioextract.jobs.errors import DuplicateJobError
from audioextract.jobs.models import Job


class JobStore:
    """Owns every Job record from creation until eviction."""

    def __init__(self):
        self._jobs: Dict[str, Job] = {}

    def create(self, job: Job) -> Job:
        if job.id in self._jobs:
            raise DuplicateJobError(job.id)
        self._jobs[job.id] = job
        return job

    def get(self, job_id: str) -> Optional[Job]:
        return self._jobs.get(job_id)

    def delete(self, job_id: str) -> Optional[Job]:
        """Remove a job. Returns None when it was already gone."""
        return self._jobs.pop(job_id, None)

    def for_each(self, visitor: Callable[[Job], None]) -> None:
        """Visit a snapshot of all jobs; the visitor may delete as it goes."""
        for job in self.snapshot():
            visitor(job)

    def snapshot(self) -> List[Job]:
        return list(self._jobs.values())

    def clear(self) -> None:
        self._jobs.clear()

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._jobs

    def __len__(self) -> int:
        return len(self._jobs)

    def __iter__(self) -> Iterator[Job]:
        return iter(self.snapshot())
