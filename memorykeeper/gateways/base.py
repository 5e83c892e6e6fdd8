"""
Base Provider Gateway

Defines the gateway capability shared by every external inference provider
and the HTTP plumbing the concrete gateways build on. HTTPGateway owns the
mapping from ``requests`` failures to the gateway error taxonomy so that no
concrete gateway handles transport errors itself.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable

import requests

from memorykeeper.gateways.errors import (
    HTTPStatusError,
    MalformedResponseError,
    TransientNetworkError,
)


logger = logging.getLogger(__name__)

# Longest body excerpt kept on HTTPStatusError and in logs
MAX_ERROR_BODY = 500


@runtime_checkable
class ProviderGateway(Protocol):
    """Protocol every provider gateway satisfies.

    The orchestrator depends only on this capability, so tests and
    alternative providers can be substituted freely.
    """

    def invoke(self, payload: Any) -> Any:
        """Call the provider once and return its decoded output.

        Raises:
            GatewayError: transient-network, non-2xx or malformed-response
        """
        ...


class HTTPGateway(ABC):
    """Shared HTTP behaviour for requests-based provider gateways.

    Subclasses set ``provider_name`` and implement ``invoke``. All requests go
    through ``_send`` which applies the (connect, read) timeout pair and
    converts every transport failure into a GatewayError.
    """

    provider_name = "http"

    def __init__(
        self,
        connect_timeout: float = 30,
        read_timeout: float = 60,
        session: Optional[requests.Session] = None
    ):
        self.timeout: Tuple[float, float] = (connect_timeout, read_timeout)
        self.session = session or requests.Session()

    @abstractmethod
    def invoke(self, payload: Any) -> Any:
        """Call the provider once."""
        pass

    def validate_requirements(self) -> List[str]:
        """Return human readable problems that prevent this gateway from working."""
        return []

    def _auth_headers(self) -> Dict[str, str]:
        return {}

    def _send(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[Tuple[float, float]] = None,
        authenticated: bool = True,
        **kwargs
    ) -> requests.Response:
        """Send one HTTP request and return the 2xx response.

        Raises:
            TransientNetworkError: connection failure or timeout
            HTTPStatusError: non-2xx status
        """
        merged_headers = dict(self._auth_headers()) if authenticated else {}
        if headers:
            merged_headers.update(headers)

        try:
            response = self.session.request(
                method,
                url,
                headers=merged_headers,
                timeout=timeout or self.timeout,
                **kwargs
            )
        except requests.exceptions.Timeout as e:
            raise TransientNetworkError(
                f"{self.provider_name} request timed out after {self.timeout[1]}s: {e}",
                provider=self.provider_name
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise TransientNetworkError(
                f"Cannot connect to {self.provider_name} at {url}: {e}",
                provider=self.provider_name
            ) from e
        except requests.exceptions.RequestException as e:
            raise TransientNetworkError(
                f"{self.provider_name} request failed: {e}",
                provider=self.provider_name
            ) from e

        if not response.ok:
            body = (response.text or "")[:MAX_ERROR_BODY]
            logger.debug(f"{self.provider_name} {method} {url} -> {response.status_code}: {body}")
            raise HTTPStatusError(
                f"{self.provider_name} API request failed: {response.status_code} {body}",
                status=response.status_code,
                body=body,
                provider=self.provider_name
            )

        return response

    def _parse_json(self, response: requests.Response) -> Any:
        """Decode a JSON body or raise MalformedResponseError."""
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"{self.provider_name} returned a non-JSON body: {(response.text or '')[:100]}",
                provider=self.provider_name
            ) from e

    def _require_content(self, response: requests.Response, what: str) -> bytes:
        """Return the raw body, rejecting empty payloads."""
        content = response.content
        if not content:
            raise MalformedResponseError(
                f"{self.provider_name} returned an empty {what}",
                provider=self.provider_name
            )
        return content
