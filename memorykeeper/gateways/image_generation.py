"""
Image-Generation Gateways

Two providers share one output type, ``GeneratedImage``:

- ReplicateImageGateway: asynchronous predictions. Submit, poll with the
  JobPoller until terminal, then download the first output URL.
- StabilityImageGateway: synchronous "core" endpoint returning base64 JSON.

Both accept an optional ``threading.Event`` so an in-flight generation can
be abandoned when the owning enhancement is cancelled.
"""

import base64
import binascii
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import requests

from memorykeeper.config import ReplicateConfig, StabilityConfig
from memorykeeper.gateways.base import HTTPGateway
from memorykeeper.gateways.errors import MalformedResponseError
from memorykeeper.jobs.models import JobStatus, ProviderJob
from memorykeeper.jobs.poller import JobPoller, PollingPolicy


logger = logging.getLogger(__name__)


# Replicate prediction status -> normalized job status
REPLICATE_STATUS = {
    "starting": JobStatus.PENDING,
    "processing": JobStatus.RUNNING,
    "succeeded": JobStatus.SUCCEEDED,
    "failed": JobStatus.FAILED,
    "canceled": JobStatus.CANCELED,
}


@dataclass
class GeneratedImage:
    """Image bytes ready for the blob store.

    Attributes:
        data: Encoded image bytes
        content_type: MIME type of data
        source_url: Provider URL the bytes were downloaded from, if any
    """
    data: bytes
    content_type: str = "image/png"
    source_url: Optional[str] = None


class ReplicateImageGateway(HTTPGateway):
    """Replicate predictions API (submit + poll + download)."""

    provider_name = "replicate"

    def __init__(
        self,
        config: ReplicateConfig,
        session: Optional[requests.Session] = None,
        sleep: Optional[Callable[[float], None]] = None
    ):
        super().__init__(config.connect_timeout, config.read_timeout, session)
        self.config = config
        self.poller = JobPoller(
            PollingPolicy(interval=config.poll_interval, max_attempts=config.poll_max_attempts),
            sleep=sleep,
            name=self.provider_name
        )

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.config.api_key}"}

    def validate_requirements(self) -> List[str]:
        if not self.config.api_key:
            return ["Replicate API token not configured. Set REPLICATE_API_KEY."]
        return []

    def submit(self, prompt: str) -> str:
        """Create a prediction and return its id."""
        model_input = {
            "prompt": prompt,
            "width": self.config.width,
            "height": self.config.height,
            "num_outputs": 1,
            "guidance_scale": self.config.guidance_scale,
        }
        base = self.config.api_url.rstrip('/')
        if self.config.version:
            url = f"{base}/predictions"
            payload = {"version": self.config.version, "input": model_input}
        else:
            url = f"{base}/models/{self.config.model}/predictions"
            payload = {"input": model_input}

        response = self._send("POST", url, headers={"Content-Type": "application/json"}, json=payload)
        data = self._parse_json(response)

        prediction_id = data.get("id") if isinstance(data, dict) else None
        if not prediction_id:
            raise MalformedResponseError(
                f"Replicate prediction response has no id: {str(data)[:200]}",
                provider=self.provider_name
            )
        return prediction_id

    def fetch_job(self, prediction_id: str) -> ProviderJob:
        """Fetch the current state of a prediction."""
        url = f"{self.config.api_url.rstrip('/')}/predictions/{prediction_id}"
        data = self._parse_json(self._send("GET", url))

        if not isinstance(data, dict) or data.get("status") not in REPLICATE_STATUS:
            raise MalformedResponseError(
                f"Replicate prediction {prediction_id} has unknown status: {str(data)[:200]}",
                provider=self.provider_name
            )

        status = REPLICATE_STATUS[data["status"]]
        result = None
        if status == JobStatus.SUCCEEDED:
            result = self._first_output_url(prediction_id, data.get("output"))

        error = data.get("error")
        return ProviderJob(
            id=prediction_id,
            status=status,
            result=result,
            error=str(error) if error else None
        )

    def _first_output_url(self, prediction_id: str, output: Any) -> str:
        if isinstance(output, list) and output:
            output = output[0]
        if not isinstance(output, str) or not output:
            raise MalformedResponseError(
                f"Replicate prediction {prediction_id} succeeded without an output URL",
                provider=self.provider_name
            )
        return output

    def invoke(self, prompt: str, cancel_event: Optional[threading.Event] = None) -> GeneratedImage:
        """Generate one image for the prompt.

        Raises:
            GatewayError: submission failure, job failure, poll timeout,
                cancellation or download failure
        """
        image_url = self.poller.run(
            submit=lambda: self.submit(prompt),
            fetch=self.fetch_job,
            cancel_event=cancel_event
        )

        # Output URLs are pre-signed; no auth header
        response = self._send("GET", image_url, authenticated=False)
        data = self._require_content(response, "image download")
        content_type = response.headers.get("Content-Type", "image/png").split(";")[0]
        logger.info(f"Replicate image downloaded ({len(data)} bytes)")
        return GeneratedImage(data=data, content_type=content_type, source_url=image_url)


class StabilityImageGateway(HTTPGateway):
    """Stability AI "core" text-to-image endpoint."""

    provider_name = "stability"

    def __init__(self, config: StabilityConfig, session: Optional[requests.Session] = None):
        super().__init__(config.connect_timeout, config.read_timeout, session)
        self.config = config

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.config.api_key}", "Accept": "application/json"}

    def validate_requirements(self) -> List[str]:
        if not self.config.api_key:
            return ["Stability API key not configured. Set STABILITY_API_KEY."]
        return []

    def invoke(self, prompt: str, cancel_event: Optional[threading.Event] = None) -> GeneratedImage:
        # multipart/form-data without file parts
        form = {
            "prompt": (None, prompt),
            "output_format": (None, self.config.output_format),
            "aspect_ratio": (None, self.config.aspect_ratio),
        }
        data = self._parse_json(self._send("POST", self.config.api_url, files=form))

        encoded = data.get("image") if isinstance(data, dict) else None
        if not encoded:
            raise MalformedResponseError(
                f"Stability response has no image (finish_reason="
                f"{data.get('finish_reason') if isinstance(data, dict) else None})",
                provider=self.provider_name
            )
        try:
            image_bytes = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise MalformedResponseError(
                f"Stability image is not valid base64: {e}",
                provider=self.provider_name
            ) from e

        return GeneratedImage(data=image_bytes, content_type=f"image/{self.config.output_format}")
