"""
Response Normalizer

Pure functions turning raw provider output (free text, semi-structured JSON,
classification candidate lists) into typed result fields. None of these
functions raise on malformed input; they fall back to documented defaults.
"""

import json
import logging
import math
import re
from typing import Any, Iterable, List, Optional

from memorykeeper.enhancement.schemas import (
    DEFAULT_CATEGORY,
    DEFAULT_TAGS,
    DEFAULT_TITLE,
    Emotion,
    Sentiment,
    StoryMetadata,
)


logger = logging.getLogger(__name__)

MAX_QUESTIONS = 3
MAX_EMOTIONS = 3
ASCII_WHITESPACE = " \t\n\x0b\f\r"

_ORDINAL = re.compile(r"^\d+\.\s*")
_ORDINAL_LINE = re.compile(r"^\d+\.\s*\S")
_TITLE_PREFIX = re.compile(r"^\s*title\s*:\s*", re.IGNORECASE)
_DOUBLE_QUOTES = "\"“”"
_SINGLE_QUOTES = "'‘’"
_WORD_SEPARATOR = re.compile(r"[ \t\n\x0b\f\r]+")


def extract_metadata(raw: Optional[str]) -> StoryMetadata:
    """Extract tags, category and summary from a model reply.

    Only the span from the first ``{`` to the last ``}`` is parsed, so prose
    around the JSON object is ignored. Anything unusable falls back to
    ``tags=["memory"]``, ``category="GENERAL"``, ``summary=""``.
    """
    if not raw:
        return StoryMetadata()

    start = raw.find("{")
    end = raw.rfind("}")
    if start == -1 or end <= start:
        logger.debug("Metadata reply has no JSON object, using defaults")
        return StoryMetadata()

    try:
        data = json.loads(raw[start:end + 1])
    except (ValueError, RecursionError) as e:
        # deeply nested replies exhaust the decoder stack
        logger.debug(f"Metadata JSON could not be parsed, using defaults: {e}")
        return StoryMetadata()

    if not isinstance(data, dict):
        return StoryMetadata()

    return StoryMetadata(
        tags=_normalize_tags(data.get("tags")),
        category=_normalize_category(data.get("category")),
        summary=data["summary"].strip() if isinstance(data.get("summary"), str) else "",
    )


def _normalize_tags(value: Any) -> List[str]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        return list(DEFAULT_TAGS)

    tags: List[str] = []
    for item in value:
        if not isinstance(item, str):
            continue
        tag = item.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags or list(DEFAULT_TAGS)


def _normalize_category(value: Any) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip().upper()
    return DEFAULT_CATEGORY


def parse_follow_up_questions(raw: Optional[str]) -> List[str]:
    """Pick at most three questions out of a model reply.

    Accepts numbered lines ("1. ...") and lines ending with "?", in their
    original order, with the ordinal marker removed.
    """
    if not raw:
        return []

    questions: List[str] = []
    for line in raw.splitlines():
        line = line.strip()
        if not line:
            continue
        if _ORDINAL_LINE.match(line) or line.endswith("?"):
            question = _ORDINAL.sub("", line, count=1).strip()
            if question:
                questions.append(question)
        if len(questions) == MAX_QUESTIONS:
            break
    return questions


def clean_title(raw: Optional[str]) -> str:
    """Strip quoting and a "Title:" label from a generated title."""
    if not raw:
        return DEFAULT_TITLE

    # first non-empty line only
    title = next((line.strip() for line in raw.splitlines() if line.strip()), "")
    title = _TITLE_PREFIX.sub("", title, count=1)
    title = _strip_quotes(title)
    title = _TITLE_PREFIX.sub("", title, count=1)
    title = _strip_quotes(title)

    return title or DEFAULT_TITLE


def _strip_quotes(text: str) -> str:
    text = text.strip().strip(_DOUBLE_QUOTES).strip()
    # single quotes only when they wrap the whole title
    if len(text) >= 2 and text[0] in _SINGLE_QUOTES and text[-1] in _SINGLE_QUOTES:
        text = text[1:-1].strip()
    return text


def _valid_candidates(candidates: Any) -> List[tuple]:
    """(label, score) pairs with a non-empty label and a finite numeric score."""
    if isinstance(candidates, dict):
        candidates = [candidates]
    if not isinstance(candidates, (list, tuple)):
        return []

    pairs = []
    for item in candidates:
        if not isinstance(item, dict):
            continue
        label = item.get("label")
        score = item.get("score")
        if not isinstance(label, str) or not label.strip():
            continue
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            continue
        if not math.isfinite(score):
            continue
        pairs.append((label.strip(), min(1.0, max(0.0, float(score)))))
    return pairs


def normalize_sentiment(candidates: Any) -> Optional[Sentiment]:
    """Keep the single highest scoring sentiment, label upper-cased."""
    pairs = _valid_candidates(candidates)
    if not pairs:
        return None
    label, score = max(pairs, key=lambda pair: pair[1])
    return Sentiment(label=label.upper(), score=score)


def normalize_emotions(candidates: Any) -> List[Emotion]:
    """Top three emotions by descending score."""
    pairs = sorted(_valid_candidates(candidates), key=lambda pair: pair[1], reverse=True)
    return [Emotion(label=label, score=score) for label, score in pairs[:MAX_EMOTIONS]]


def count_words(text: Optional[str]) -> int:
    """Number of tokens separated by runs of ASCII whitespace.

    Non-ASCII spaces such as NBSP do not separate words.
    """
    stripped = (text or "").strip(ASCII_WHITESPACE)
    if not stripped:
        return 0
    return len(_WORD_SEPARATOR.split(stripped))


def join_stories(stories: Iterable[str]) -> str:
    """Join story texts for chat context, skipping blanks."""
    return "\n\n---\n\n".join(story.strip() for story in stories if story and story.strip())
