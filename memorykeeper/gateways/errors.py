"""
Provider Gateway Error Classes

This module defines the exception hierarchy raised at the boundary of every
external inference provider. Each error carries an ``ErrorKind`` so callers
can log and branch on the failure category without inspecting provider
specific details.

Error Hierarchy:
    GatewayError (base)
    ├── ConfigurationError (missing credentials, unknown provider id)
    ├── TransientNetworkError (timeouts, connection resets)
    ├── HTTPStatusError (provider answered with a non-2xx status)
    ├── MalformedResponseError (body could not be decoded or lacks fields)
    ├── JobFailedError (asynchronous job reached failed/canceled)
    ├── PollTimeoutError (job never reached a terminal state)
    └── PollCancelledError (caller cancelled while polling)

Usage:
    >>> from memorykeeper.gateways.errors import HTTPStatusError
    >>>
    >>> try:
    >>>     gateway.invoke(request)
    >>> except HTTPStatusError as e:
    >>>     logger.warning(f"{e.provider} returned {e.status}: {e.body}")
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Failure categories shared by gateways, the poller and blob stores."""
    TRANSIENT_NETWORK = "transient-network"
    NON_2XX = "non-2xx"
    MALFORMED_RESPONSE = "malformed-response"
    JOB_FAILED = "job-failed"
    POLL_TIMEOUT = "poll-timeout"
    POLL_CANCELLED = "poll-cancelled"
    STORAGE_FAILURE = "storage-failure"
    CONFIGURATION = "configuration"


class GatewayError(Exception):
    """Base exception for all provider gateway errors.

    Attributes:
        provider: Name of the provider that failed (e.g. "groq")
        kind: Failure category

    Example:
        >>> try:
        >>>     gateway.invoke(request)
        >>> except GatewayError as e:
        >>>     logger.warning(f"{e.provider} failed ({e.kind.value}): {e}")
    """
    kind: ErrorKind = ErrorKind.TRANSIENT_NETWORK

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class ConfigurationError(GatewayError):
    """Raised when a gateway cannot be built from the current configuration.

    Common scenarios:
    - Missing API keys
    - Unknown provider id requested from the factory
    - Out-of-range polling parameters

    Example:
        >>> raise ConfigurationError(
        >>>     "Groq API key not configured. "
        >>>     "Set GROQ_API_KEY environment variable or "
        >>>     "add 'api_key' to config.yaml groq section."
        >>> )
    """
    kind = ErrorKind.CONFIGURATION


class TransientNetworkError(GatewayError):
    """Raised when the provider could not be reached or did not answer in time.

    These are candidates for retry by the caller. Gateways never retry.
    """
    kind = ErrorKind.TRANSIENT_NETWORK


class HTTPStatusError(GatewayError):
    """Raised when a provider answers with a non-2xx status code.

    Attributes:
        status: HTTP status code
        body: Response body text (possibly truncated)
    """
    kind = ErrorKind.NON_2XX

    def __init__(self, message: str, status: int, body: str = "", provider: Optional[str] = None):
        super().__init__(message, provider)
        self.status = status
        self.body = body

    @property
    def is_rate_limited(self) -> bool:
        return self.status == 429

    @property
    def is_server_error(self) -> bool:
        return 500 <= self.status < 600


class MalformedResponseError(GatewayError):
    """Raised when a 2xx response cannot be decoded into the expected shape."""
    kind = ErrorKind.MALFORMED_RESPONSE


class JobFailedError(GatewayError):
    """Raised when an asynchronous provider job ends as failed or canceled.

    Attributes:
        job_id: Provider job identifier
        reason: Provider supplied failure text, if any
    """
    kind = ErrorKind.JOB_FAILED

    def __init__(self, message: str, job_id: str, reason: Optional[str] = None,
                 provider: Optional[str] = None):
        super().__init__(message, provider)
        self.job_id = job_id
        self.reason = reason


class PollTimeoutError(GatewayError):
    """Raised when a job is still pending/running after the polling budget.

    Attributes:
        job_id: Provider job identifier
        attempts: Number of status polls performed
    """
    kind = ErrorKind.POLL_TIMEOUT

    def __init__(self, message: str, job_id: str, attempts: int, provider: Optional[str] = None):
        super().__init__(message, provider)
        self.job_id = job_id
        self.attempts = attempts


class PollCancelledError(GatewayError):
    """Raised when the caller cancels a job wait before it completes."""
    kind = ErrorKind.POLL_CANCELLED

    def __init__(self, message: str, job_id: Optional[str] = None, provider: Optional[str] = None):
        super().__init__(message, provider)
        self.job_id = job_id


def error_kind(error: BaseException) -> str:
    """Return the kind label used in log lines for any exception."""
    kind = getattr(error, "kind", None)
    if isinstance(kind, ErrorKind):
        if kind is ErrorKind.NON_2XX:
            return f"{kind.value}({getattr(error, 'status', '?')})"
        return kind.value
    return type(error).__name__
