"""
Retry Logic with Exponential Backoff

Gateways never retry on their own; the orchestrator may retry critical
text-generation steps when the failure is transient. Transient means a
network failure, HTTP 429 or an HTTP 5xx response. Everything else is
permanent and surfaces immediately.
"""

import logging
import time
from typing import Callable, Optional, TypeVar

from memorykeeper.gateways.errors import GatewayError, HTTPStatusError, TransientNetworkError


logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_transient_error(error: BaseException) -> bool:
    """Check if an error is transient and should be retried."""
    if isinstance(error, TransientNetworkError):
        return True
    if isinstance(error, HTTPStatusError):
        return error.is_rate_limited or error.is_server_error
    return False


def calculate_backoff_delay(attempt: int, base_delay: float = 1.0) -> float:
    """Calculate exponential backoff delay.

    Uses exponential backoff: delay = base_delay * (2 ** attempt)
    - Attempt 0: 1s
    - Attempt 1: 2s
    - Attempt 2: 4s
    """
    return base_delay * (2 ** attempt)


class RetryContext:
    """Iterator-style retry helper with exponential backoff.

    Example:
        >>> retry_ctx = RetryContext(max_attempts=3, base_delay=1.0)
        >>> for attempt in retry_ctx:
        ...     try:
        ...         result = gateway.invoke(request)
        ...         break
        ...     except GatewayError as e:
        ...         if not retry_ctx.should_retry(e):
        ...             raise
        ...         retry_ctx.wait()
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        sleep: Optional[Callable[[float], None]] = None
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._sleep = sleep or time.sleep
        self.current_attempt = 0

    def __iter__(self):
        self.current_attempt = 0
        return self

    def __next__(self) -> int:
        if self.current_attempt >= self.max_attempts:
            raise StopIteration
        attempt = self.current_attempt
        self.current_attempt += 1
        return attempt

    def should_retry(self, error: BaseException) -> bool:
        if self.current_attempt >= self.max_attempts:
            return False
        return is_transient_error(error)

    def wait(self) -> None:
        """Wait with exponential backoff before the next attempt."""
        if self.current_attempt > 0:
            delay = calculate_backoff_delay(self.current_attempt - 1, self.base_delay)
            logger.info(f"Waiting {delay}s before retry...")
            self._sleep(delay)


def retry_call(
    func: Callable[[], T],
    max_attempts: int = 1,
    base_delay: float = 1.0,
    description: str = "call",
    sleep: Optional[Callable[[float], None]] = None
) -> T:
    """Call ``func`` and retry transient gateway errors.

    With ``max_attempts=1`` this is a plain call.

    Raises:
        The last exception once attempts are exhausted, or the first
        permanent one.
    """
    retry_ctx = RetryContext(max_attempts=max_attempts, base_delay=base_delay, sleep=sleep)
    for attempt in retry_ctx:
        try:
            return func()
        except GatewayError as e:
            if not retry_ctx.should_retry(e):
                if attempt > 0:
                    logger.error(f"{description} failed after {attempt + 1} attempt(s): {e}")
                raise
            logger.warning(
                f"Transient error in {description} "
                f"(attempt {attempt + 1}/{max_attempts}): {type(e).__name__}: {e}"
            )
            retry_ctx.wait()

    # the loop either returns or raises
    raise RuntimeError(f"{description}: retry loop exited without a result")
