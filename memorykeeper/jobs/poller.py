"""
Job Poller

Bounded submit-then-poll loop shared by every asynchronous provider. The
poller owns no threads: it blocks the calling thread, so callers run it from
background workers (image leg) or from the CLI (transcription).

Usage:
    >>> poller = JobPoller(PollingPolicy(interval=5.0, max_attempts=60), name="assemblyai")
    >>> text = poller.run(
    ...     submit=lambda: gateway.submit(audio_url),
    ...     fetch=gateway.fetch_job,
    ... )
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from memorykeeper.gateways.errors import (
    JobFailedError,
    PollCancelledError,
    PollTimeoutError,
)
from memorykeeper.jobs.models import JobStatus, ProviderJob


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PollingPolicy:
    """How often and how long to poll.

    Attributes:
        interval: Seconds to wait between two status polls
        max_attempts: Maximum number of status polls
    """
    interval: float
    max_attempts: int

    def __post_init__(self):
        if self.interval < 0:
            raise ValueError(f"interval must be >= 0, got {self.interval}")
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")

    @property
    def ceiling(self) -> float:
        """Upper bound on seconds spent sleeping (excluding request time)."""
        return self.interval * (self.max_attempts - 1)


class JobPoller:
    """Drives a provider job from submission to a terminal state.

    Sleeps happen only between polls, never after the last one, so a job
    that never finishes costs exactly ``max_attempts`` fetches and
    ``max_attempts - 1`` waits.
    """

    def __init__(
        self,
        policy: PollingPolicy,
        sleep: Optional[Callable[[float], None]] = None,
        name: str = "job"
    ):
        """Initialize the poller.

        Args:
            policy: Interval and attempt budget
            sleep: Blocking sleep function (defaults to time.sleep)
            name: Provider name used in logs and errors
        """
        self.policy = policy
        self._sleep = sleep
        self.name = name

    def run(
        self,
        submit: Callable[[], str],
        fetch: Callable[[str], ProviderJob],
        cancel_event: Optional[threading.Event] = None
    ) -> Any:
        """Submit a job and wait for its result.

        A failing ``submit`` is terminal: its exception propagates without
        any polling.

        Returns:
            The job result once the provider reports success
        """
        job_id = submit()
        logger.info(f"{self.name}: submitted job {job_id}")
        return self.wait(job_id, fetch, cancel_event)

    def wait(
        self,
        job_id: str,
        fetch: Callable[[str], ProviderJob],
        cancel_event: Optional[threading.Event] = None
    ) -> Any:
        """Poll an already submitted job until it is terminal.

        Raises:
            JobFailedError: Provider reported failed or canceled
            PollTimeoutError: Still pending/running after max_attempts polls
            PollCancelledError: cancel_event was set while waiting
            GatewayError: Any error raised by ``fetch`` propagates unchanged
        """
        started = time.monotonic()
        max_attempts = self.policy.max_attempts

        for attempt in range(1, max_attempts + 1):
            self._check_cancelled(job_id, cancel_event)

            job = fetch(job_id)
            logger.debug(f"{self.name}: job {job_id} is {job.status.value} "
                         f"(poll {attempt}/{max_attempts})")

            if job.status.is_terminal:
                if job.status == JobStatus.SUCCEEDED:
                    logger.info(f"{self.name}: job {job_id} succeeded after {attempt} poll(s) "
                                f"in {time.monotonic() - started:.1f}s")
                    return job.result

                reason = job.error or job.status.value
                raise JobFailedError(
                    f"{self.name} job {job_id} {job.status.value}: {reason}",
                    job_id=job_id,
                    reason=job.error,
                    provider=self.name
                )

            if attempt < max_attempts:
                self._wait_interval(job_id, cancel_event)

        raise PollTimeoutError(
            f"{self.name} job {job_id} did not finish after {max_attempts} polls "
            f"({self.policy.interval}s interval)",
            job_id=job_id,
            attempts=max_attempts,
            provider=self.name
        )

    def _wait_interval(self, job_id: str, cancel_event: Optional[threading.Event]) -> None:
        if self._sleep is not None:
            self._sleep(self.policy.interval)
            return
        if cancel_event is not None:
            # Event.wait returns early when cancel() is called
            if cancel_event.wait(self.policy.interval):
                self._check_cancelled(job_id, cancel_event)
            return
        time.sleep(self.policy.interval)

    def _check_cancelled(self, job_id: str, cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.info(f"{self.name}: stopped waiting for job {job_id} (cancelled)")
            raise PollCancelledError(
                f"{self.name} job {job_id} wait cancelled",
                job_id=job_id,
                provider=self.name
            )
