"""
Property-based tests for the response normalizer, image prompt builder,
daily prompt cache and job poller.

**Property 1: Metadata Extraction Never Fails**
*For any* model reply, extract_metadata returns non-empty tags without
duplicates and a non-empty upper-case category.

**Property 2: Emotion Ranking**
*For any* candidate list, normalize_emotions returns at most three valid
emotions ordered by descending score within [0, 1].

**Property 3: Bounded Question Parsing**
*For any* reply, at most three non-empty questions are returned.

**Property 4: Single-Line Titles**
*For any* reply, clean_title returns one non-empty line.

**Property 5: Word Count Additivity**
*For any* two texts, the word count of their space-joined concatenation is
the sum of their word counts.

**Property 6: Deterministic Image Prompts**
*For any* narrative and title, the prompt is stable and bounded by the
preamble, title, excerpt and style lengths.

**Property 7: Daily Prompt Memoization**
*For any* sequence of category requests, each normalized category is
computed at most once.

**Property 8: Bounded Polling**
*For any* attempt budget and status sequence, the poller fetches until the
first terminal status or the budget runs out, and sleeps only between
fetches.
"""

import json
import math
from unittest.mock import Mock

import pytest
from hypothesis import given, settings, strategies as st

from memorykeeper.enhancement.image_prompt import (
    IMAGE_PROMPT_PREAMBLE,
    IMAGE_PROMPT_STYLE,
    NARRATIVE_EXCERPT_CHARS,
    build_image_prompt,
)
from memorykeeper.enhancement.normalize import (
    clean_title,
    count_words,
    extract_metadata,
    normalize_emotions,
    normalize_sentiment,
    parse_follow_up_questions,
)
from memorykeeper.enhancement.prompt_cache import DailyPromptCache
from memorykeeper.gateways.errors import JobFailedError, PollTimeoutError
from memorykeeper.jobs.models import JobStatus, ProviderJob
from memorykeeper.jobs.poller import JobPoller, PollingPolicy


ascii_labels = st.text(alphabet="abcdefghijklmnopqrstuvwxyz ", min_size=0, max_size=12)

scores = st.one_of(
    st.floats(allow_nan=True, allow_infinity=True),
    st.integers(min_value=-5, max_value=5),
    st.booleans(),
    st.none(),
    st.just("0.5"),
)

candidates = st.lists(
    st.fixed_dictionaries({"label": st.one_of(ascii_labels, st.none()), "score": scores}),
    max_size=10
)

json_values = st.recursive(
    st.one_of(st.none(), st.booleans(), st.integers(), st.text(max_size=10)),
    lambda children: st.one_of(st.lists(children, max_size=4),
                               st.dictionaries(st.text(max_size=5), children, max_size=4)),
    max_leaves=10
)


def _is_valid(candidate):
    label, score = candidate["label"], candidate["score"]
    if not isinstance(label, str) or not label.strip():
        return False
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        return False
    return math.isfinite(score)


class TestMetadataProperties:
    """Property 1: Metadata Extraction Never Fails"""

    @given(st.text())
    @settings(max_examples=200)
    def test_arbitrary_text(self, raw):
        metadata = extract_metadata(raw)

        assert metadata.tags
        assert len(metadata.tags) == len(set(metadata.tags))
        assert all(tag and tag == tag.strip() for tag in metadata.tags)
        assert metadata.category
        assert isinstance(metadata.summary, str)

    @given(
        prefix=st.text(alphabet="abc xyz:\n", max_size=20),
        tags=json_values,
        category=json_values,
        summary=json_values,
        suffix=st.text(alphabet="abc xyz.\n", max_size=20)
    )
    @settings(max_examples=200)
    def test_json_objects_with_arbitrary_fields(self, prefix, tags, category, summary, suffix):
        raw = prefix + json.dumps({"tags": tags, "category": category, "summary": summary}) + suffix

        metadata = extract_metadata(raw)

        assert metadata.tags
        assert len(metadata.tags) == len(set(metadata.tags))
        if isinstance(category, str) and category.strip():
            assert metadata.category == category.strip().upper()
        else:
            assert metadata.category == "GENERAL"
        if not isinstance(summary, str):
            assert metadata.summary == ""


class TestClassificationProperties:
    """Property 2: Emotion Ranking"""

    @given(candidates)
    @settings(max_examples=200)
    def test_emotions_ranked_and_bounded(self, items):
        emotions = normalize_emotions(items)
        valid = [item for item in items if _is_valid(item)]

        assert len(emotions) == min(3, len(valid))
        ranked = [e.score for e in emotions]
        assert ranked == sorted(ranked, reverse=True)
        assert all(0.0 <= score <= 1.0 for score in ranked)
        assert {e.label for e in emotions} <= {item["label"].strip() for item in valid}

    @given(candidates)
    @settings(max_examples=200)
    def test_sentiment_is_best_valid_candidate(self, items):
        sentiment = normalize_sentiment(items)
        valid = [item for item in items if _is_valid(item)]

        if not valid:
            assert sentiment is None
            return
        best = max(min(1.0, max(0.0, float(item["score"]))) for item in valid)
        assert sentiment.score == best
        assert sentiment.label == sentiment.label.upper()


class TestTextProperties:
    """Properties 3-5: questions, titles and word counts"""

    @given(st.text())
    @settings(max_examples=200)
    def test_questions_bounded(self, raw):
        questions = parse_follow_up_questions(raw)

        assert len(questions) <= 3
        assert all(q and q == q.strip() for q in questions)
        assert all(q in raw for q in questions)

    @given(st.lists(st.sampled_from(["1. ", "Why", "?", "\n", " ", "2.", "x"]), max_size=30))
    def test_question_like_replies_bounded(self, parts):
        assert len(parse_follow_up_questions("".join(parts))) <= 3

    @given(st.text())
    @settings(max_examples=200)
    def test_title_is_one_nonempty_line(self, raw):
        title = clean_title(raw)

        assert title
        assert len(title.splitlines()) == 1

    @given(st.text(), st.text())
    def test_word_count_additive(self, first, second):
        assert count_words(first + " " + second) == count_words(first) + count_words(second)


class TestImagePromptProperties:
    """Property 6: Deterministic Image Prompts"""

    @given(st.text(max_size=600), st.text(max_size=60))
    def test_prompt_shape(self, narrative, title):
        prompt = build_image_prompt(narrative, title)

        assert prompt == build_image_prompt(narrative, title)
        assert prompt.startswith(IMAGE_PROMPT_PREAMBLE)
        assert prompt.endswith(IMAGE_PROMPT_STYLE)
        max_len = (len(IMAGE_PROMPT_PREAMBLE) + len(title.strip()) + len(". ")
                   + NARRATIVE_EXCERPT_CHARS + len("...") + len(". ") + len(IMAGE_PROMPT_STYLE))
        assert len(prompt) <= max_len


class TestDailyPromptCacheProperties:
    """Property 7: Daily Prompt Memoization"""

    @given(st.lists(st.sampled_from(["childhood", "CHILDHOOD", " Love ", "love", "WAR", "war "]),
                    min_size=1, max_size=20))
    def test_each_category_computed_once(self, categories):
        cache = DailyPromptCache()
        compute = Mock(side_effect=lambda: "prompt")

        for category in categories:
            assert cache.get_or_compute(category, compute) == "prompt"

        assert compute.call_count == len({c.strip().upper() for c in categories})


class TestJobPollerProperties:
    """Property 8: Bounded Polling"""

    @given(
        max_attempts=st.integers(min_value=1, max_value=8),
        statuses=st.lists(st.sampled_from(list(JobStatus)), min_size=1, max_size=12)
    )
    def test_fetches_and_sleeps_are_bounded(self, max_attempts, statuses):
        sleeps = []
        fetched = []

        def fetch(job_id):
            index = len(fetched)
            fetched.append(job_id)
            status = statuses[index] if index < len(statuses) else JobStatus.RUNNING
            return ProviderJob(id=job_id, status=status, result="done", error="boom")

        poller = JobPoller(PollingPolicy(interval=1.0, max_attempts=max_attempts), sleep=sleeps.append)
        terminal = next((i for i, s in enumerate(statuses[:max_attempts]) if s.is_terminal), None)

        if terminal is None:
            with pytest.raises(PollTimeoutError):
                poller.run(submit=lambda: "job-1", fetch=fetch)
            assert len(fetched) == max_attempts
        elif statuses[terminal] == JobStatus.SUCCEEDED:
            assert poller.run(submit=lambda: "job-1", fetch=fetch) == "done"
            assert len(fetched) == terminal + 1
        else:
            with pytest.raises(JobFailedError):
                poller.run(submit=lambda: "job-1", fetch=fetch)
            assert len(fetched) == terminal + 1

        assert sleeps == [1.0] * (len(fetched) - 1)
