"""
Memory Keeper Configuration Management

This module provides centralized configuration loading for every provider
gateway, the blob store and the enhancement pipeline. Configuration is
loaded with the following precedence:
1. Environment variables (highest priority)
2. Config file values (.memory-keeper/config.yaml)
3. Default values (lowest priority)

Each section maps to one dataclass. Environment variables are named
``<PREFIX>_<FIELD>`` in upper case, for example ``GROQ_API_KEY``,
``REPLICATE_POLL_INTERVAL`` or ``MEMORY_KEEPER_SPEECH_INLINE``. Config file
strings may reference the environment with ``${VAR_NAME:-default}``.

Usage:
    >>> from memorykeeper.config import AppConfig
    >>>
    >>> config = AppConfig.load_from_yaml('.memory-keeper/config.yaml')
    >>> print(config.groq.model)
    >>> print(config.replicate.poll_max_attempts)
"""

import dataclasses
import os
import re
import typing
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


DEFAULT_CONFIG_PATH = '.memory-keeper/config.yaml'

_ENV_SUBSTITUTION = re.compile(r'\$\{([^}:]+)(?::-([^}]*))?\}')
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class GroqConfig:
    """Configuration for the Groq text-generation gateway.

    Attributes:
        api_key: Groq API key (required)
        api_url: OpenAI-compatible chat completions endpoint
        model: Model used when a request does not name one
        connect_timeout: Seconds allowed to establish the connection
        read_timeout: Seconds allowed to receive the response
    """
    api_key: str = ""
    api_url: str = "https://api.groq.com/openai/v1/chat/completions"
    model: str = "llama-3.1-8b-instant"
    connect_timeout: float = 30
    read_timeout: float = 60


@dataclass
class HuggingFaceConfig:
    """Configuration for the Hugging Face sentiment and emotion gateways.

    Attributes:
        api_key: Hugging Face inference token (required)
        api_url: Base URL; the model id is appended
        sentiment_model: Model id used for sentiment classification
        emotion_model: Model id used for emotion classification
        connect_timeout: Seconds allowed to establish the connection
        read_timeout: Seconds allowed to receive the response (cold models are slow)
    """
    api_key: str = ""
    api_url: str = "https://api-inference.huggingface.co/models"
    sentiment_model: str = "cardiffnlp/twitter-roberta-base-sentiment-latest"
    emotion_model: str = "j-hartmann/emotion-english-distilroberta-base"
    connect_timeout: float = 30
    read_timeout: float = 120


@dataclass
class ReplicateConfig:
    """Configuration for the Replicate image-generation gateway.

    Attributes:
        api_key: Replicate API token (required)
        api_url: Replicate API base URL
        model: Model owner/name used when no version is pinned
        version: Optional model version hash; takes precedence over model
        width: Image width in pixels
        height: Image height in pixels
        guidance_scale: Classifier-free guidance scale
        connect_timeout: Seconds allowed to establish the connection
        read_timeout: Seconds allowed to receive a response
        poll_interval: Seconds between prediction status polls
        poll_max_attempts: Number of status polls before giving up
    """
    api_key: str = ""
    api_url: str = "https://api.replicate.com/v1"
    model: str = "stability-ai/sdxl"
    version: Optional[str] = None
    width: int = 1024
    height: int = 1024
    guidance_scale: float = 7.5
    connect_timeout: float = 30
    read_timeout: float = 300
    poll_interval: float = 1.0
    poll_max_attempts: int = 60


@dataclass
class StabilityConfig:
    """Configuration for the Stability AI image-generation gateway."""
    api_key: str = ""
    api_url: str = "https://api.stability.ai/v2beta/stable-image/generate/core"
    output_format: str = "png"
    aspect_ratio: str = "1:1"
    connect_timeout: float = 30
    read_timeout: float = 120


@dataclass
class StreamElementsConfig:
    """Configuration for the StreamElements text-to-speech gateway (no key needed)."""
    api_url: str = "https://api.streamelements.com/kappa/v2/speech"
    voice: str = "Brian"
    max_chars: int = 1000
    connect_timeout: float = 30
    read_timeout: float = 60


@dataclass
class ElevenLabsConfig:
    """Configuration for the ElevenLabs text-to-speech gateway."""
    api_key: str = ""
    api_url: str = "https://api.elevenlabs.io/v1"
    voice_id: str = "21m00Tcm4TlvDq8ikWAM"
    model_id: str = "eleven_monolingual_v1"
    stability: float = 0.5
    similarity_boost: float = 0.75
    max_chars: int = 1000
    connect_timeout: float = 30
    read_timeout: float = 60


@dataclass
class AssemblyAIConfig:
    """Configuration for the AssemblyAI transcription gateway.

    Attributes:
        api_key: AssemblyAI API key (required)
        api_url: AssemblyAI v2 API base URL
        connect_timeout: Seconds allowed to establish the connection
        read_timeout: Seconds allowed to receive a response (uploads are large)
        poll_interval: Seconds between transcript status polls
        poll_max_attempts: Number of status polls before giving up
    """
    api_key: str = ""
    api_url: str = "https://api.assemblyai.com/v2"
    connect_timeout: float = 30
    read_timeout: float = 300
    poll_interval: float = 5.0
    poll_max_attempts: int = 60


@dataclass
class StorageConfig:
    """Configuration for the blob store receiving images and audio.

    Attributes:
        backend: "local" or "s3"
        local_dir: Directory used by the local backend
        s3_bucket: Bucket name used by the s3 backend
        s3_region: AWS region of the bucket
        s3_prefix: Key prefix for every stored object
        public_base_url: Optional CDN/base URL used to build returned URLs
        access_key_id: AWS access key ID (optional if using IAM roles)
        secret_access_key: AWS secret access key (optional if using IAM roles)
    """
    backend: str = "local"
    local_dir: str = ".memory-keeper/blobs"
    s3_bucket: Optional[str] = None
    s3_region: str = "us-east-1"
    s3_prefix: str = "memory-keeper"
    public_base_url: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None


@dataclass
class EnhancementSettings:
    """Settings for the enhancement pipeline itself.

    Attributes:
        image_provider: "replicate" or "stability"
        speech_provider: "streamelements" or "elevenlabs"
        speech_inline: Run the speech leg before enhance() returns
        background_workers: Size of the thread pool running deferred legs
        critical_step_attempts: Attempts per critical step (1 disables retry)
        retry_base_delay: Base delay in seconds for retry backoff
        daily_prompt_ttl: Seconds a cached daily prompt stays valid (None: forever)
    """
    image_provider: str = "replicate"
    speech_provider: str = "streamelements"
    speech_inline: bool = True
    background_workers: int = 4
    critical_step_attempts: int = 1
    retry_base_delay: float = 1.0
    daily_prompt_ttl: Optional[float] = None


# Section name in the YAML file -> (dataclass, environment prefix)
SECTIONS = {
    'groq': (GroqConfig, 'GROQ'),
    'huggingface': (HuggingFaceConfig, 'HUGGINGFACE'),
    'replicate': (ReplicateConfig, 'REPLICATE'),
    'stability': (StabilityConfig, 'STABILITY'),
    'streamelements': (StreamElementsConfig, 'STREAMELEMENTS'),
    'elevenlabs': (ElevenLabsConfig, 'ELEVENLABS'),
    'assemblyai': (AssemblyAIConfig, 'ASSEMBLYAI'),
    'storage': (StorageConfig, 'MEMORY_KEEPER_STORAGE'),
    'enhancement': (EnhancementSettings, 'MEMORY_KEEPER'),
}


@dataclass
class AppConfig:
    """Complete Memory Keeper configuration.

    Aggregates one configuration object per provider plus storage and
    pipeline settings, and knows how to load them from YAML or a dict.
    """
    groq: GroqConfig = field(default_factory=GroqConfig)
    huggingface: HuggingFaceConfig = field(default_factory=HuggingFaceConfig)
    replicate: ReplicateConfig = field(default_factory=ReplicateConfig)
    stability: StabilityConfig = field(default_factory=StabilityConfig)
    streamelements: StreamElementsConfig = field(default_factory=StreamElementsConfig)
    elevenlabs: ElevenLabsConfig = field(default_factory=ElevenLabsConfig)
    assemblyai: AssemblyAIConfig = field(default_factory=AssemblyAIConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    enhancement: EnhancementSettings = field(default_factory=EnhancementSettings)

    @classmethod
    def load_from_yaml(cls, config_path: Optional[str] = None) -> 'AppConfig':
        """Load configuration from a YAML file.

        A missing file is not an error; environment variables and defaults
        still apply.

        Args:
            config_path: Path to config YAML file (default: .memory-keeper/config.yaml)

        Returns:
            AppConfig instance with every section resolved
        """
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        config_data: Dict[str, Any] = {}
        config_file = Path(config_path)
        if config_file.exists():
            with open(config_file, 'r') as f:
                config_data = yaml.safe_load(f) or {}

        if not isinstance(config_data, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping at top level")

        return cls.load_from_dict(config_data)

    @classmethod
    def load_from_dict(cls, data: Dict[str, Any]) -> 'AppConfig':
        """Load configuration from a dictionary shaped like the YAML file.

        Example:
            >>> config = AppConfig.load_from_dict({'groq': {'model': 'llama3-70b-8192'}})
        """
        sections = {}
        for name, (section_cls, env_prefix) in SECTIONS.items():
            sections[name] = cls._load_section(section_cls, env_prefix, data.get(name) or {})
        return cls(**sections)

    @classmethod
    def _load_section(cls, section_cls, env_prefix: str, values: Dict[str, Any]):
        kwargs = {}
        for f in dataclasses.fields(section_cls):
            env_var = f"{env_prefix}_{f.name.upper()}"
            resolved = cls._resolve_value(values.get(f.name), env_var, f.default)
            kwargs[f.name] = _coerce(resolved, _type_hint(f), env_var)
        return section_cls(**kwargs)

    @staticmethod
    def _resolve_value(config_value: Any, env_var: str, default: Any) -> Any:
        """Resolve configuration value with precedence: ENV > Config > Default.

        Config strings support ``${VAR_NAME:-default}`` substitution; a value
        that substitutes to the empty string counts as unset.

        Example:
            >>> # With GROQ_MODEL="llama3-70b-8192" in environment
            >>> AppConfig._resolve_value('llama-3.1-8b-instant', 'GROQ_MODEL', 'x')
            'llama3-70b-8192'
        """
        env_value = os.getenv(env_var)
        if env_value is not None and env_value != '':
            return env_value

        if isinstance(config_value, str) and '${' in config_value:
            def replace_env_var(match):
                return os.getenv(match.group(1), match.group(2) or '')

            config_value = _ENV_SUBSTITUTION.sub(replace_env_var, config_value)
            if config_value == '':
                config_value = None

        if config_value is not None:
            return config_value

        return default

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return dataclasses.asdict(self)


def _type_hint(f: dataclasses.Field) -> Any:
    """Return the concrete scalar type of a field, unwrapping Optional[...]."""
    hint = f.type
    args = [arg for arg in typing.get_args(hint) if arg is not type(None)]
    if args:
        return args[0]
    return hint


def _coerce(value: Any, target: Any, name: str) -> Any:
    """Coerce env/config strings to the declared type of the field."""
    if value is None:
        return value
    try:
        if target is bool:
            if isinstance(value, bool):
                return value
            text = str(value).strip().lower()
            if text in _TRUE_VALUES:
                return True
            if text in _FALSE_VALUES:
                return False
            raise ValueError(f"not a boolean: {value!r}")
        if target is int:
            return int(value)
        if target is float:
            return float(value)
        if target is str:
            return str(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid value for {name}: {e}") from e
    return value
