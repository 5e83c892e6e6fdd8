"""
Long-running provider jobs.

Providers that work asynchronously (image prediction, speech transcription)
hand back a job id that must be polled until it reaches a terminal state.
"""

from memorykeeper.jobs.models import JobStatus, ProviderJob
from memorykeeper.jobs.poller import JobPoller, PollingPolicy

__all__ = ["JobStatus", "ProviderJob", "JobPoller", "PollingPolicy"]
