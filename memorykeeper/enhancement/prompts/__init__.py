"""YAML prompt templates and their loader/renderer."""

from memorykeeper.enhancement.prompts.loader import PromptLoader
from memorykeeper.enhancement.prompts.renderer import PromptRenderer

__all__ = ["PromptLoader", "PromptRenderer"]
