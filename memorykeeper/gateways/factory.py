"""
Provider Gateway Factory

Builds gateways from AppConfig, caching one instance per provider id so the
orchestrator and the CLI share HTTP sessions. Missing credentials are
reported as ConfigurationError at construction time instead of surfacing as
401 responses mid-pipeline.
"""

import logging
from typing import Callable, Dict, Optional

import requests

from memorykeeper.config import AppConfig
from memorykeeper.gateways.base import HTTPGateway
from memorykeeper.gateways.errors import ConfigurationError
from memorykeeper.gateways.huggingface import EmotionGateway, SentimentGateway
from memorykeeper.gateways.image_generation import ReplicateImageGateway, StabilityImageGateway
from memorykeeper.gateways.speech import ElevenLabsSpeechGateway, StreamElementsSpeechGateway
from memorykeeper.gateways.text_generation import GroqTextGateway
from memorykeeper.gateways.transcription import AssemblyAITranscriptionGateway


logger = logging.getLogger(__name__)


IMAGE_PROVIDERS = ("replicate", "stability")
SPEECH_PROVIDERS = ("streamelements", "elevenlabs")


class GatewayFactory:
    """Factory for creating provider gateways.

    This factory handles:
    - Gateway instantiation based on provider id
    - Gateway caching to prevent redundant sessions
    - Credential validation before use

    Example:
        >>> config = AppConfig.load_from_yaml('.memory-keeper/config.yaml')
        >>> factory = GatewayFactory(config)
        >>> text = factory.create_text_gateway()
        >>> image = factory.create_image_gateway("stability")
    """

    def __init__(
        self,
        config: AppConfig,
        session: Optional[requests.Session] = None,
        validate: bool = True
    ):
        """Initialize the gateway factory.

        Args:
            config: Complete application configuration
            session: Optional shared requests session (tests inject a mock)
            validate: Raise ConfigurationError when credentials are missing
        """
        self.config = config
        self.session = session
        self.validate = validate
        self._gateway_cache: Dict[str, HTTPGateway] = {}

    def create_text_gateway(self) -> GroqTextGateway:
        return self._get("groq", lambda: GroqTextGateway(self.config.groq, self.session))

    def create_sentiment_gateway(self) -> SentimentGateway:
        return self._get("huggingface-sentiment",
                         lambda: SentimentGateway(self.config.huggingface, self.session))

    def create_emotion_gateway(self) -> EmotionGateway:
        return self._get("huggingface-emotion",
                         lambda: EmotionGateway(self.config.huggingface, self.session))

    def create_image_gateway(self, provider: Optional[str] = None) -> HTTPGateway:
        """Create the image gateway ("replicate" or "stability").

        Raises:
            ConfigurationError: unknown provider or missing credentials
        """
        provider = provider or self.config.enhancement.image_provider
        if provider == "replicate":
            return self._get(provider, lambda: ReplicateImageGateway(self.config.replicate, self.session))
        if provider == "stability":
            return self._get(provider, lambda: StabilityImageGateway(self.config.stability, self.session))
        raise ConfigurationError(
            f"Unknown image provider: {provider}. "
            f"Supported providers: {', '.join(IMAGE_PROVIDERS)}"
        )

    def create_speech_gateway(self, provider: Optional[str] = None) -> HTTPGateway:
        """Create the speech gateway ("streamelements" or "elevenlabs")."""
        provider = provider or self.config.enhancement.speech_provider
        if provider == "streamelements":
            return self._get(provider,
                             lambda: StreamElementsSpeechGateway(self.config.streamelements, self.session))
        if provider == "elevenlabs":
            return self._get(provider,
                             lambda: ElevenLabsSpeechGateway(self.config.elevenlabs, self.session))
        raise ConfigurationError(
            f"Unknown speech provider: {provider}. "
            f"Supported providers: {', '.join(SPEECH_PROVIDERS)}"
        )

    def create_transcription_gateway(self) -> AssemblyAITranscriptionGateway:
        return self._get("assemblyai",
                         lambda: AssemblyAITranscriptionGateway(self.config.assemblyai, self.session))

    def clear_cache(self) -> None:
        self._gateway_cache.clear()

    def _get(self, key: str, build: Callable[[], HTTPGateway]):
        if key in self._gateway_cache:
            return self._gateway_cache[key]

        gateway = build()
        if self.validate:
            problems = gateway.validate_requirements()
            if problems:
                raise ConfigurationError("\n".join(problems), provider=gateway.provider_name)

        logger.debug(f"Created {type(gateway).__name__} for provider '{key}'")
        self._gateway_cache[key] = gateway
        return gateway
