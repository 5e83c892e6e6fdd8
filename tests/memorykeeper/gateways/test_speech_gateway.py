"""
Unit Tests: StreamElements and ElevenLabs speech gateways

**Test Coverage:**
- Provider specific truncation of long text
- Request shape per provider
- Empty text rejected before any request
- Empty audio body -> MalformedResponseError
"""

import pytest

from memorykeeper.config import ElevenLabsConfig, StreamElementsConfig
from memorykeeper.gateways.errors import HTTPStatusError, MalformedResponseError
from memorykeeper.gateways.speech import ElevenLabsSpeechGateway, StreamElementsSpeechGateway


MP3_BYTES = b"ID3\x03\x00fake-mp3"


@pytest.fixture
def streamelements(mock_session):
    return StreamElementsSpeechGateway(StreamElementsConfig(max_chars=50), session=mock_session)


@pytest.fixture
def elevenlabs(mock_session):
    return ElevenLabsSpeechGateway(ElevenLabsConfig(api_key="xi_test", max_chars=50), session=mock_session)


# ============================================================================
# Test: StreamElements
# ============================================================================

def test_streamelements_sends_voice_and_text(streamelements, mock_session, response_factory):
    mock_session.request.return_value = response_factory(content=MP3_BYTES)

    audio = streamelements.invoke("  Once upon a time.  ")

    assert audio == MP3_BYTES
    args, kwargs = mock_session.request.call_args
    assert args == ("GET", "https://api.streamelements.com/kappa/v2/speech")
    assert kwargs["params"] == {"voice": "Brian", "text": "Once upon a time."}


def test_streamelements_truncates_with_ellipsis(streamelements):
    text = "x" * 80

    prepared = streamelements.prepare_text(text)

    assert prepared == "x" * 40 + "..."


def test_streamelements_keeps_text_at_limit(streamelements):
    assert streamelements.prepare_text("y" * 50) == "y" * 50


@pytest.mark.parametrize("text", ["", "   \n"])
def test_empty_text_rejected_without_request(streamelements, mock_session, text):
    with pytest.raises(ValueError):
        streamelements.invoke(text)

    mock_session.request.assert_not_called()


def test_streamelements_empty_body_is_malformed(streamelements, mock_session, response_factory):
    mock_session.request.return_value = response_factory(content=b"")

    with pytest.raises(MalformedResponseError):
        streamelements.invoke("hello")


def test_streamelements_needs_no_key(streamelements):
    assert streamelements.validate_requirements() == []


# ============================================================================
# Test: ElevenLabs
# ============================================================================

def test_elevenlabs_posts_to_voice_endpoint(elevenlabs, mock_session, response_factory):
    mock_session.request.return_value = response_factory(content=MP3_BYTES)

    assert elevenlabs.invoke("Hello there") == MP3_BYTES

    args, kwargs = mock_session.request.call_args
    assert args == ("POST", "https://api.elevenlabs.io/v1/text-to-speech/21m00Tcm4TlvDq8ikWAM")
    assert kwargs["headers"]["xi-api-key"] == "xi_test"
    assert kwargs["headers"]["Accept"] == "audio/mpeg"
    assert kwargs["json"]["text"] == "Hello there"
    assert kwargs["json"]["voice_settings"] == {"stability": 0.5, "similarity_boost": 0.75}


def test_elevenlabs_hard_cuts_long_text(elevenlabs):
    assert elevenlabs.prepare_text("z" * 80) == "z" * 50


def test_elevenlabs_unauthorized(elevenlabs, mock_session, response_factory):
    mock_session.request.return_value = response_factory(status_code=401, text="invalid api key")

    with pytest.raises(HTTPStatusError) as exc_info:
        elevenlabs.invoke("hello")

    assert exc_info.value.status == 401
    assert exc_info.value.provider == "elevenlabs"


def test_elevenlabs_requires_key(mock_session):
    gateway = ElevenLabsSpeechGateway(ElevenLabsConfig(), session=mock_session)
    assert gateway.validate_requirements()
