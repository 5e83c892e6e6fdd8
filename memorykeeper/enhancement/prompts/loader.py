"""
Prompt Loader

Loads and validates YAML prompt templates for the enhancement steps.
Supports a custom prompt directory with fallback to the packaged defaults.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from memorykeeper.enhancement.errors import PromptTemplateError


PROMPT_NAMES = (
    "follow_up_questions",
    "narrative",
    "title",
    "metadata",
    "daily_prompt",
    "grandparent_chat",
)


class PromptLoader:
    """Loads and validates YAML prompt templates.

    Each template declares ``system``, ``user_template``, ``temperature`` and
    ``max_tokens``. Loaded templates are cached per name.

    Attributes:
        default_prompts_dir: Directory containing default prompt templates
        custom_prompts_dir: Optional directory for overriding templates
    """

    def __init__(
        self,
        default_prompts_dir: Optional[Path] = None,
        custom_prompts_dir: Optional[Path] = None
    ):
        if default_prompts_dir is None:
            default_prompts_dir = Path(__file__).parent

        self.default_prompts_dir = Path(default_prompts_dir)
        self.custom_prompts_dir = Path(custom_prompts_dir) if custom_prompts_dir else None
        self._prompt_cache: Dict[str, Dict[str, Any]] = {}

        if not self.default_prompts_dir.exists():
            raise PromptTemplateError(
                f"Default prompts directory does not exist: {self.default_prompts_dir}"
            )

    def load_prompt(self, name: str) -> Dict[str, Any]:
        """Load the prompt template with the given name.

        Checks the custom prompts directory first, then the defaults.

        Raises:
            PromptTemplateError: unknown name, unreadable file or invalid template
        """
        if name in self._prompt_cache:
            return self._prompt_cache[name]

        if name not in PROMPT_NAMES:
            raise PromptTemplateError(
                f"Unknown prompt: {name}. Must be one of: {list(PROMPT_NAMES)}"
            )

        filename = f"{name}.yaml"
        path = self.default_prompts_dir / filename
        if self.custom_prompts_dir and (self.custom_prompts_dir / filename).exists():
            path = self.custom_prompts_dir / filename

        if not path.exists():
            raise PromptTemplateError(f"No prompt template found for {name} at {path}")

        prompt = self._load_yaml(path)
        self._validate_prompt(prompt, name)
        self._prompt_cache[name] = prompt
        return prompt

    def _load_yaml(self, path: Path) -> Dict[str, Any]:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise PromptTemplateError(f"Invalid YAML in {path}: {e}") from e
        except OSError as e:
            raise PromptTemplateError(f"Error reading {path}: {e}") from e

        if not isinstance(data, dict):
            raise PromptTemplateError(
                f"YAML file must contain a dictionary, got {type(data).__name__}"
            )
        return data

    def _validate_prompt(self, prompt: Dict[str, Any], name: str) -> None:
        """Ensure the template has every required field with a usable value."""
        for field in ("system", "user_template", "temperature", "max_tokens"):
            if field not in prompt:
                raise PromptTemplateError(f"Prompt for {name} missing required field: {field}")

        for field in ("system", "user_template"):
            if not isinstance(prompt[field], str) or not prompt[field].strip():
                raise PromptTemplateError(
                    f"Prompt '{field}' field must be a non-empty string for {name}"
                )

        temperature = prompt["temperature"]
        if isinstance(temperature, bool) or not isinstance(temperature, (int, float)) \
                or not 0.0 <= temperature <= 2.0:
            raise PromptTemplateError(
                f"Prompt 'temperature' for {name} must be a number between 0.0 and 2.0"
            )

        max_tokens = prompt["max_tokens"]
        if isinstance(max_tokens, bool) or not isinstance(max_tokens, int) or max_tokens <= 0:
            raise PromptTemplateError(f"Prompt 'max_tokens' for {name} must be a positive integer")

    def clear_cache(self) -> None:
        """Clear the prompt cache so edited templates are reloaded."""
        self._prompt_cache.clear()
