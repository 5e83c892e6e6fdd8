"""
Enhancement Schemas

Pydantic models for the enhancement request and the composite result built
step by step by the orchestrator.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_TAGS = ["memory"]
DEFAULT_CATEGORY = "GENERAL"
DEFAULT_TITLE = "Untitled Story"


class EnhancementRequest(BaseModel):
    """Immutable input to the enhancement pipeline.

    Attributes:
        transcript: Raw transcript of the recorded memory
        supplemental_answers: Optional answers to earlier follow-up questions
    """
    model_config = ConfigDict(frozen=True)

    transcript: str = Field(..., description="Raw transcript text", min_length=1)
    supplemental_answers: Optional[str] = Field(
        None,
        description="Answers to previously generated follow-up questions"
    )

    @field_validator('transcript')
    @classmethod
    def validate_transcript(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("transcript cannot be blank")
        return v

    def combined_text(self) -> str:
        """Transcript plus supplemental answers, separated by a blank line."""
        if self.supplemental_answers and self.supplemental_answers.strip():
            return f"{self.transcript}\n\n{self.supplemental_answers}"
        return self.transcript


class Sentiment(BaseModel):
    """Overall sentiment of a story."""
    label: str = Field(..., description="Upper-case sentiment label, e.g. POSITIVE")
    score: float = Field(..., description="Confidence in [0, 1]", ge=0.0, le=1.0)


class Emotion(BaseModel):
    """One detected emotion."""
    label: str = Field(..., description="Emotion label, e.g. joy")
    score: float = Field(..., description="Confidence in [0, 1]", ge=0.0, le=1.0)


class StoryMetadata(BaseModel):
    """Tags, category and summary extracted from the narrative.

    Attributes:
        tags: Ordered, de-duplicated tags
        category: Upper-case category (CHILDHOOD, CAREER, LOVE, ...)
        summary: One or two sentence summary
    """
    tags: List[str] = Field(default_factory=lambda: list(DEFAULT_TAGS))
    category: str = DEFAULT_CATEGORY
    summary: str = ""

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "tags": ["family", "kitchen", "baking"],
            "category": "CHILDHOOD",
            "summary": "Baking bread with Grandma every Sunday morning."
        }
    })


class DeferredStatus(str, Enum):
    """State of a leg that may complete after enhance() returns."""
    NOT_REQUESTED = "not_requested"
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class EnhancementResult(BaseModel):
    """Composite enhancement result.

    Critical fields (questions through summary) are always populated on a
    returned result. ``image_url`` is eventually consistent: it may still be
    None when enhance() returns and is filled in by the image leg.
    """
    questions: List[str] = Field(default_factory=list, max_length=3)
    enhanced_narrative: str = ""
    title: str = ""
    summary: str = ""
    tags: List[str] = Field(default_factory=list)
    category: str = ""
    sentiment: Optional[Sentiment] = None
    emotions: List[Emotion] = Field(default_factory=list, max_length=3)
    word_count: int = Field(0, ge=0)

    image_url: Optional[str] = None
    image_status: DeferredStatus = DeferredStatus.NOT_REQUESTED
    image_error: Optional[str] = None

    speech_audio_url: Optional[str] = None
    speech_status: DeferredStatus = DeferredStatus.NOT_REQUESTED
    speech_error: Optional[str] = None

    model_config = ConfigDict(validate_assignment=True)

    def apply_metadata(self, metadata: StoryMetadata) -> None:
        self.tags = list(metadata.tags)
        self.category = metadata.category
        self.summary = metadata.summary
