"""
Pytest configuration and shared fixtures.

Provides test isolation (environment reset) and mock HTTP plumbing so no
test ever reaches a real provider.
"""
import copy
import json
import os
from typing import Any, Dict, Optional
from unittest.mock import Mock

import pytest
import requests


# =============================================================================
# PROVIDER PAYLOADS
# =============================================================================

GROQ_COMPLETION = {
    "id": "chatcmpl-123",
    "model": "llama-3.1-8b-instant",
    "choices": [
        {
            "index": 0,
            "message": {"role": "assistant", "content": "  Grandma's Kitchen  "},
            "finish_reason": "stop",
        }
    ],
    "usage": {"prompt_tokens": 40, "completion_tokens": 5, "total_tokens": 45},
}

SENTIMENT_CANDIDATES = [[
    {"label": "positive", "score": 0.91},
    {"label": "neutral", "score": 0.07},
    {"label": "negative", "score": 0.02},
]]

EMOTION_CANDIDATES = [[
    {"label": "joy", "score": 0.62},
    {"label": "sadness", "score": 0.21},
    {"label": "surprise", "score": 0.09},
    {"label": "neutral", "score": 0.05},
    {"label": "fear", "score": 0.03},
]]


def make_response(
    status_code: int = 200,
    json_data: Any = None,
    content: Optional[bytes] = None,
    text: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None
) -> Mock:
    """Build a mock requests.Response."""
    response = Mock(spec=requests.Response)
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    response.headers = headers or {}

    if json_data is not None:
        response.json.return_value = json_data
        body = json.dumps(json_data)
    else:
        response.json.side_effect = ValueError("No JSON object could be decoded")
        body = text if text is not None else (content or b"").decode("latin-1")

    response.text = text if text is not None else body
    response.content = content if content is not None else body.encode("utf-8")
    return response


@pytest.fixture
def response_factory():
    """Factory fixture returning mock responses."""
    return make_response


@pytest.fixture
def groq_completion():
    return copy.deepcopy(GROQ_COMPLETION)


@pytest.fixture
def sentiment_candidates():
    return copy.deepcopy(SENTIMENT_CANDIDATES)


@pytest.fixture
def emotion_candidates():
    return copy.deepcopy(EMOTION_CANDIDATES)


@pytest.fixture
def mock_session():
    """A requests.Session double; set .request.return_value/.side_effect per test."""
    return Mock(spec=requests.Session)


@pytest.fixture(autouse=True)
def isolate_tests(tmp_path, monkeypatch):
    """Run each test from a temporary working directory.

    Keeps .memory-keeper/ config lookups and local blob writes out of the
    repository.
    """
    monkeypatch.chdir(tmp_path)
    yield


@pytest.fixture(autouse=True, scope="function")
def reset_environment():
    """Reset environment variables between tests."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)
