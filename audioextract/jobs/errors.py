"""
Job-specific error types.

All errors inherit from JobError so routes can translate them in one place.
"""


class JobError(Exception):
    """Base exception for all job-related failures."""
    pass


class JobNotFoundError(JobError):
    """Raised when a job id is unknown or the job has already been evicted."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")


class JobNotReadyError(JobError):
    """Raised when a job's output is requested before it exists, or after it was removed."""

    def __init__(self, job_id: str, reason: str = "Output not ready"):
        self.job_id = job_id
        self.reason = reason
        super().__init__(reason)


class DuplicateJobError(JobError):
    """Raised when registering a job id that is already in the store."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job already exists: {job_id}")


class InvalidStateTransitionError(JobError):
    """Raised when attempting an illegal state transition."""

    def __init__(self, job_id: str, current_state: str, target_state: str):
        self.job_id = job_id
        self.current_state = current_state
        self.target_state = target_state
        super().__init__(
            f"Invalid state transition for job {job_id}: "
            f"{current_state} -> {target_state}"
        )


class UploadRejectedError(JobError):
    """Raised when an upload fails validation. No job is created."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)
