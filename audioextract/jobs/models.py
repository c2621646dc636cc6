"""Job record data model for async transcoding."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field
import uuid

from audioextract.jobs.errors import InvalidStateTransitionError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.DONE, JobStatus.ERROR)

    def can_transition_to(self, target: "JobStatus") -> bool:
        return target in _TRANSITIONS[self]


# processing -> processing is a progress update
_TRANSITIONS = {
    JobStatus.QUEUED: {JobStatus.PROCESSING},
    JobStatus.PROCESSING: {JobStatus.PROCESSING, JobStatus.DONE, JobStatus.ERROR},
    JobStatus.DONE: set(),
    JobStatus.ERROR: set(),
}


class Job(BaseModel):
    """Tracks the lifecycle of one upload-to-MP3 conversion."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    status: JobStatus = JobStatus.QUEUED
    progress_percent: int = 0
    input_path: str
    output_path: str
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    # Owned by the EvictionManager
    cleanup_handle: Optional[Any] = Field(default=None, exclude=True, repr=False)

    def transition(self, target: JobStatus) -> None:
        """Move to `target`, refusing any edge that would regress the job."""
        if not self.status.can_transition_to(target):
            raise InvalidStateTransitionError(self.id, self.status.value, target.value)
        self.status = target

    def start(self, now: Optional[datetime] = None) -> None:
        self.transition(JobStatus.PROCESSING)
        self.started_at = now or utcnow()

    def report_progress(self, percent: Optional[float]) -> None:
        # Some inputs cannot estimate a percentage; treat that as 0
        self.transition(JobStatus.PROCESSING)
        value = int(round(percent or 0))
        self.progress_percent = max(0, min(100, value))

    def complete(self, now: Optional[datetime] = None) -> None:
        self.transition(JobStatus.DONE)
        self.progress_percent = 100
        self.finished_at = now or utcnow()

    def fail(self, reason: str, now: Optional[datetime] = None) -> None:
        self.transition(JobStatus.ERROR)
        self.error_message = reason or "Transcoding failed"
        self.finished_at = now or utcnow()
