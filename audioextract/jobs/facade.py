"""Read-only projection of jobs for status polling and downloads."""

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel

from audioextract.jobs.errors import JobNotFoundError, JobNotReadyError
from audioextract.jobs.models import Job, JobStatus
from audioextract.jobs.store import JobStore
from audioextract.storage.artifacts import ArtifactStore


class JobStatusView(BaseModel):
    id: str
    status: JobStatus
    progress_percent: int
    download_url: Optional[str] = None
    error_message: Optional[str] = None


@dataclass(frozen=True)
class Artifact:
    path: str
    filename: str
    media_type: str = "audio/mpeg"


def status_url(job_id: str) -> str:
    return f"/api/status/{job_id}"


def download_url(job_id: str) -> str:
    return f"/api/download/{job_id}"


class JobFacade:
    """Client-facing view of the store. Never mutates a job."""

    def __init__(self, store: JobStore, artifacts: ArtifactStore):
        self._store = store
        self._artifacts = artifacts

    def _require(self, job_id: str) -> Job:
        job = self._store.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def get_status(self, job_id: str) -> JobStatusView:
        job = self._require(job_id)
        return JobStatusView(
            id=job.id,
            status=job.status,
            progress_percent=job.progress_percent,
            download_url=download_url(job.id) if job.status == JobStatus.DONE else None,
            error_message=job.error_message if job.status == JobStatus.ERROR else None,
        )

    def fetch_artifact(self, job_id: str) -> Artifact:
        """Locate a finished job's MP3.

        Checks the file itself, not only the status: a done job may have
        lost its output to eviction between polling and download.
        """
        job = self._require(job_id)
        if job.status != JobStatus.DONE or not self._artifacts.exists(job.output_path):
            raise JobNotReadyError(job_id)
        return Artifact(path=job.output_path, filename=f"audio-{job.id}.mp3")
