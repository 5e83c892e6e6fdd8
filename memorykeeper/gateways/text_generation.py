"""
Groq Text-Generation Gateway

Calls Groq's OpenAI-compatible chat completions endpoint with one system
message and one user message, and returns the first choice's content.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from memorykeeper.config import GroqConfig
from memorykeeper.gateways.base import HTTPGateway
from memorykeeper.gateways.errors import MalformedResponseError


logger = logging.getLogger(__name__)


@dataclass
class ChatRequest:
    """Chat completion request sent to the text-generation provider.

    Attributes:
        system_prompt: Instructions for the model
        user_message: The user turn (transcript, narrative, category, ...)
        temperature: Sampling temperature (0.0 = deterministic, 2.0 = very creative)
        max_tokens: Maximum number of tokens to generate
        model: Optional model override (defaults to the configured model)
    """
    system_prompt: str
    user_message: str
    temperature: float = 0.7
    max_tokens: int = 1000
    model: Optional[str] = None

    def __post_init__(self):
        """Validate request parameters."""
        if not self.user_message:
            raise ValueError("user_message cannot be empty")
        if self.max_tokens <= 0:
            raise ValueError("max_tokens must be positive")
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError("temperature must be between 0.0 and 2.0")

    def to_messages(self) -> List[Dict[str, str]]:
        messages = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.append({"role": "user", "content": self.user_message})
        return messages


@dataclass
class ChatResponse:
    """Chat completion result.

    Attributes:
        content: Generated text of the first choice
        model_used: Model reported by the provider
        tokens_used: Total tokens reported by the provider (0 if absent)
        metadata: finish_reason and prompt/completion token split
    """
    content: str
    model_used: str
    tokens_used: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)


class GroqTextGateway(HTTPGateway):
    """Text-generation gateway backed by Groq.

    Example:
        >>> gateway = GroqTextGateway(GroqConfig(api_key="gsk_..."))
        >>> gateway.chat("You are a storyteller.", "Tell me about 1962.", 0.8, 1000)
    """

    provider_name = "groq"

    def __init__(self, config: GroqConfig, session: Optional[requests.Session] = None):
        super().__init__(config.connect_timeout, config.read_timeout, session)
        self.config = config

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.config.api_key}"}

    def validate_requirements(self) -> List[str]:
        if not self.config.api_key:
            return ["Groq API key not configured. Set GROQ_API_KEY."]
        return []

    def invoke(self, request: ChatRequest) -> ChatResponse:
        """Send a chat completion request.

        Raises:
            TransientNetworkError: network failure or timeout
            HTTPStatusError: non-2xx response (429 on rate limit)
            MalformedResponseError: missing choices/message/content
        """
        model = request.model or self.config.model
        payload = {
            "model": model,
            "messages": request.to_messages(),
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
        }

        response = self._send(
            "POST",
            self.config.api_url,
            headers={"Content-Type": "application/json"},
            json=payload
        )
        data = self._parse_json(response)

        try:
            choice = data["choices"][0]
            content = choice["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise MalformedResponseError(
                f"Groq response missing choices[0].message.content: {str(data)[:200]}",
                provider=self.provider_name
            ) from e

        if not isinstance(content, str):
            raise MalformedResponseError(
                f"Groq returned non-text content of type {type(content).__name__}",
                provider=self.provider_name
            )

        usage = data.get("usage") or {}
        logger.debug(f"Groq completion: model={data.get('model', model)}, "
                     f"tokens={usage.get('total_tokens', 0)}")

        return ChatResponse(
            content=content.strip(),
            model_used=data.get("model", model),
            tokens_used=int(usage.get("total_tokens", 0) or 0),
            metadata={
                "finish_reason": choice.get("finish_reason"),
                "prompt_tokens": usage.get("prompt_tokens", 0),
                "completion_tokens": usage.get("completion_tokens", 0),
            }
        )

    def chat(
        self,
        system_prompt: str,
        user_message: str,
        temperature: float = 0.7,
        max_tokens: int = 1000
    ) -> str:
        """Convenience wrapper returning only the generated text."""
        return self.invoke(ChatRequest(
            system_prompt=system_prompt,
            user_message=user_message,
            temperature=temperature,
            max_tokens=max_tokens
        )).content
