"""
Speech-Generation Gateways

Text-to-speech providers returning MP3 bytes. Both providers cap the input
length, so text is truncated before sending:

- StreamElements keeps the first ``max_chars - 10`` characters and appends "..."
- ElevenLabs hard-cuts at ``max_chars``
"""

import logging
from typing import Dict, List, Optional

import requests

from memorykeeper.config import ElevenLabsConfig, StreamElementsConfig
from memorykeeper.gateways.base import HTTPGateway


logger = logging.getLogger(__name__)

AUDIO_CONTENT_TYPE = "audio/mpeg"


class SpeechGateway(HTTPGateway):
    """Base class for text-to-speech gateways."""

    max_chars = 1000

    def prepare_text(self, text: str) -> str:
        """Validate and truncate text to the provider's ceiling."""
        if not text or not text.strip():
            raise ValueError("Cannot synthesize speech for empty text")
        text = text.strip()
        if len(text) <= self.max_chars:
            return text
        logger.debug(f"{self.provider_name}: truncating {len(text)} chars to {self.max_chars}")
        return self._truncate(text)

    def _truncate(self, text: str) -> str:
        return text[:self.max_chars]

    def invoke(self, text: str) -> bytes:
        audio = self._synthesize(self.prepare_text(text))
        logger.info(f"{self.provider_name}: synthesized {len(audio)} bytes of audio")
        return audio

    def _synthesize(self, text: str) -> bytes:
        raise NotImplementedError


class StreamElementsSpeechGateway(SpeechGateway):
    """StreamElements public TTS endpoint (no API key)."""

    provider_name = "streamelements"

    def __init__(self, config: StreamElementsConfig, session: Optional[requests.Session] = None):
        super().__init__(config.connect_timeout, config.read_timeout, session)
        self.config = config
        self.max_chars = config.max_chars

    def _truncate(self, text: str) -> str:
        return text[:self.max_chars - 10] + "..."

    def _synthesize(self, text: str) -> bytes:
        response = self._send(
            "GET",
            self.config.api_url,
            params={"voice": self.config.voice, "text": text}
        )
        return self._require_content(response, "audio body")


class ElevenLabsSpeechGateway(SpeechGateway):
    """ElevenLabs text-to-speech for a configured voice."""

    provider_name = "elevenlabs"

    def __init__(self, config: ElevenLabsConfig, session: Optional[requests.Session] = None):
        super().__init__(config.connect_timeout, config.read_timeout, session)
        self.config = config
        self.max_chars = config.max_chars

    def _auth_headers(self) -> Dict[str, str]:
        return {"xi-api-key": self.config.api_key}

    def validate_requirements(self) -> List[str]:
        if not self.config.api_key:
            return ["ElevenLabs API key not configured. Set ELEVENLABS_API_KEY."]
        return []

    def _synthesize(self, text: str) -> bytes:
        url = f"{self.config.api_url.rstrip('/')}/text-to-speech/{self.config.voice_id}"
        payload = {
            "text": text,
            "model_id": self.config.model_id,
            "voice_settings": {
                "stability": self.config.stability,
                "similarity_boost": self.config.similarity_boost,
            },
        }
        response = self._send(
            "POST",
            url,
            headers={"Content-Type": "application/json", "Accept": AUDIO_CONTENT_TYPE},
            json=payload
        )
        return self._require_content(response, "audio body")
