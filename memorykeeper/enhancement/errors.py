"""
Enhancement Error Hierarchy

Defines the exceptions raised by the story enhancement pipeline. Provider
failures arrive as GatewayError subclasses; a failing critical step is
reported to callers as one EnhancementError wrapping that cause.
"""

from typing import Optional

from memorykeeper.gateways.errors import error_kind


class EnhancementError(Exception):
    """A critical pipeline step failed, so no result is produced.

    Attributes:
        step: Name of the failed step (e.g. "narrative")
        step_number: Position of the step in the pipeline (1-7)
        cause: The underlying exception
    """

    def __init__(
        self,
        message: str,
        step: Optional[str] = None,
        step_number: Optional[int] = None,
        cause: Optional[BaseException] = None
    ):
        super().__init__(message)
        self.step = step
        self.step_number = step_number
        self.cause = cause

    @property
    def kind(self) -> Optional[str]:
        """Error kind of the underlying cause, for logs and exit codes."""
        if self.cause is None:
            return None
        return error_kind(self.cause)


class PromptTemplateError(EnhancementError):
    """Error loading or validating a prompt template.

    Raised when a YAML prompt file is missing, malformed, or lacks the
    system/user_template/temperature/max_tokens fields.
    """
    pass


class PromptRenderError(EnhancementError):
    """Error rendering prompt template.

    Raised when a Jinja2 template fails to render due to syntax errors
    or missing variables.
    """
    pass
