"""
Hugging Face Inference Gateways

Text classification through the hosted Inference API. The API answers with
either a flat list of ``{label, score}`` candidates or a list wrapping one
such list per input; both envelopes are unwrapped here so callers always see
a flat candidate list. Choosing among candidates is the normalizer's job.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from memorykeeper.config import HuggingFaceConfig
from memorykeeper.gateways.base import HTTPGateway
from memorykeeper.gateways.errors import MalformedResponseError


logger = logging.getLogger(__name__)


class HuggingFaceInferenceGateway(HTTPGateway):
    """Classification gateway for one hosted model."""

    provider_name = "huggingface"

    def __init__(
        self,
        config: HuggingFaceConfig,
        model: str,
        session: Optional[requests.Session] = None
    ):
        super().__init__(config.connect_timeout, config.read_timeout, session)
        self.config = config
        self.model = model

    @property
    def endpoint(self) -> str:
        return f"{self.config.api_url.rstrip('/')}/{self.model}"

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.config.api_key}"}

    def validate_requirements(self) -> List[str]:
        if not self.config.api_key:
            return ["Hugging Face API key not configured. Set HUGGINGFACE_API_KEY."]
        return []

    def invoke(self, text: str) -> List[Dict[str, Any]]:
        """Classify text and return the raw candidate list.

        Raises:
            TransientNetworkError: network failure or timeout
            HTTPStatusError: non-2xx response (503 while the model loads)
            MalformedResponseError: body is not a candidate list
        """
        response = self._send(
            "POST",
            self.endpoint,
            headers={"Content-Type": "application/json"},
            json={"inputs": text}
        )
        data = self._parse_json(response)
        candidates = self._unwrap_candidates(data)
        logger.debug(f"{self.model}: {len(candidates)} candidate label(s)")
        return candidates

    def _unwrap_candidates(self, data: Any) -> List[Dict[str, Any]]:
        if isinstance(data, list) and data and isinstance(data[0], list):
            data = data[0]
        if not isinstance(data, list):
            raise MalformedResponseError(
                f"{self.model} returned {type(data).__name__}, expected a list of labels",
                provider=self.provider_name
            )
        return [item for item in data if isinstance(item, dict)]


class SentimentGateway(HuggingFaceInferenceGateway):
    """Sentiment classification (positive / neutral / negative)."""

    def __init__(self, config: HuggingFaceConfig, session: Optional[requests.Session] = None):
        super().__init__(config, config.sentiment_model, session)


class EmotionGateway(HuggingFaceInferenceGateway):
    """Emotion classification (joy, sadness, surprise, ...)."""

    def __init__(self, config: HuggingFaceConfig, session: Optional[requests.Session] = None):
        super().__init__(config, config.emotion_model, session)
