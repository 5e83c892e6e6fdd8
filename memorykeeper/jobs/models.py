"""Provider job state as seen by the poller."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class JobStatus(str, Enum):
    """Lifecycle of an asynchronous provider job."""
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.CANCELED)


@dataclass
class ProviderJob:
    """One status snapshot of a provider job.

    Attributes:
        id: Provider job identifier
        status: Normalized job status
        result: Provider result once SUCCEEDED (URL, transcript text, ...)
        error: Provider failure text when FAILED or CANCELED
    """
    id: str
    status: JobStatus
    result: Any = None
    error: Optional[str] = None
