"""
Prompt Renderer

Renders prompt templates into a text-generation request using Jinja2.
Undefined variables are errors so a template typo cannot silently send an
empty prompt to the provider.
"""

from typing import Any, Dict

from jinja2 import Environment, StrictUndefined, TemplateError

from memorykeeper.enhancement.errors import PromptRenderError
from memorykeeper.gateways.text_generation import ChatRequest


class PromptRenderer:
    """Renders prompt templates with story context.

    Attributes:
        strict_mode: If True, raises error for undefined variables
    """

    def __init__(self, strict_mode: bool = True):
        self.strict_mode = strict_mode
        if strict_mode:
            self.env = Environment(undefined=StrictUndefined, keep_trailing_newline=False)
        else:
            self.env = Environment(keep_trailing_newline=False)

    def render(self, prompt_template: Dict[str, Any], **context: Any) -> ChatRequest:
        """Render a template into a ChatRequest.

        Args:
            prompt_template: Loaded template (system, user_template, temperature, max_tokens)
            **context: Template variables (transcript_text, categories, category, ...)

        Raises:
            PromptRenderError: If template rendering fails
        """
        try:
            system_prompt = self.env.from_string(prompt_template["system"]).render(**context)
            user_message = self.env.from_string(prompt_template["user_template"]).render(**context)
        except TemplateError as e:
            raise PromptRenderError(f"Error rendering prompt template: {e}") from e
        except KeyError as e:
            raise PromptRenderError(f"Prompt template missing required field: {e}") from e

        try:
            return ChatRequest(
                system_prompt=system_prompt.strip(),
                user_message=user_message.strip(),
                temperature=float(prompt_template["temperature"]),
                max_tokens=int(prompt_template["max_tokens"]),
            )
        except (KeyError, ValueError) as e:
            raise PromptRenderError(f"Rendered prompt is not a valid request: {e}") from e
