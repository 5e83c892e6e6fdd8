"""
Unit Tests: AssemblyAITranscriptionGateway

**Test Coverage:**
- Upload -> submit -> poll flow
- Reading audio from a local file path
- Provider error status -> JobFailedError with reason
- Empty audio rejected before upload
- Missing upload_url / id -> MalformedResponseError
"""

from unittest.mock import Mock

import pytest

from memorykeeper.config import AssemblyAIConfig
from memorykeeper.gateways.errors import JobFailedError, MalformedResponseError, PollTimeoutError
from memorykeeper.gateways.transcription import AssemblyAITranscriptionGateway
from memorykeeper.jobs.models import JobStatus


AUDIO = b"RIFF....WAVEfmt fake-audio"
UPLOAD_URL = "https://cdn.assemblyai.com/upload/abc"


@pytest.fixture
def sleep():
    return Mock()


@pytest.fixture
def gateway(mock_session, sleep):
    config = AssemblyAIConfig(api_key="aai_test", poll_interval=5.0, poll_max_attempts=3)
    return AssemblyAITranscriptionGateway(config, session=mock_session, sleep=sleep)


def test_transcribe_bytes(gateway, mock_session, response_factory, sleep):
    mock_session.request.side_effect = [
        response_factory(json_data={"upload_url": UPLOAD_URL}),
        response_factory(json_data={"id": "tr-1", "status": "queued"}),
        response_factory(json_data={"id": "tr-1", "status": "processing"}),
        response_factory(json_data={"id": "tr-1", "status": "completed", "text": "We moved in 1962."}),
    ]

    text = gateway.transcribe_audio(AUDIO)

    assert text == "We moved in 1962."
    sleep.assert_called_once_with(5.0)

    calls = mock_session.request.call_args_list
    assert calls[0].args == ("POST", "https://api.assemblyai.com/v2/upload")
    assert calls[0].kwargs["data"] == AUDIO
    assert calls[0].kwargs["headers"]["authorization"] == "aai_test"
    assert calls[1].args == ("POST", "https://api.assemblyai.com/v2/transcript")
    assert calls[1].kwargs["json"] == {"audio_url": UPLOAD_URL}
    assert calls[2].args == ("GET", "https://api.assemblyai.com/v2/transcript/tr-1")


def test_transcribe_reads_audio_file(gateway, mock_session, response_factory, tmp_path):
    audio_file = tmp_path / "memory.wav"
    audio_file.write_bytes(AUDIO)
    mock_session.request.side_effect = [
        response_factory(json_data={"upload_url": UPLOAD_URL}),
        response_factory(json_data={"id": "tr-1", "status": "queued"}),
        response_factory(json_data={"id": "tr-1", "status": "completed", "text": "hello"}),
    ]

    assert gateway.invoke(audio_file) == "hello"
    assert mock_session.request.call_args_list[0].kwargs["data"] == AUDIO


def test_transcription_error_status(gateway, mock_session, response_factory):
    mock_session.request.side_effect = [
        response_factory(json_data={"upload_url": UPLOAD_URL}),
        response_factory(json_data={"id": "tr-1", "status": "queued"}),
        response_factory(json_data={"id": "tr-1", "status": "error", "error": "Audio file is corrupt"}),
    ]

    with pytest.raises(JobFailedError) as exc_info:
        gateway.transcribe_audio(AUDIO)

    assert exc_info.value.reason == "Audio file is corrupt"
    assert exc_info.value.job_id == "tr-1"


def test_transcription_poll_timeout(gateway, mock_session, response_factory):
    mock_session.request.side_effect = [
        response_factory(json_data={"upload_url": UPLOAD_URL}),
        response_factory(json_data={"id": "tr-1", "status": "queued"}),
    ] + [response_factory(json_data={"id": "tr-1", "status": "processing"}) for _ in range(3)]

    with pytest.raises(PollTimeoutError):
        gateway.transcribe_audio(AUDIO)


def test_completed_without_text_is_empty_string(gateway, mock_session, response_factory):
    mock_session.request.return_value = response_factory(json_data={"id": "tr-1", "status": "completed"})

    job = gateway.fetch_job("tr-1")

    assert job.status == JobStatus.SUCCEEDED
    assert job.result == ""


def test_empty_audio_rejected(gateway, mock_session):
    with pytest.raises(ValueError):
        gateway.transcribe_audio(b"")

    mock_session.request.assert_not_called()


def test_upload_without_url_is_malformed(gateway, mock_session, response_factory):
    mock_session.request.return_value = response_factory(json_data={})

    with pytest.raises(MalformedResponseError):
        gateway.upload(AUDIO)


def test_submit_without_id_is_malformed(gateway, mock_session, response_factory):
    mock_session.request.return_value = response_factory(json_data={"status": "queued"})

    with pytest.raises(MalformedResponseError):
        gateway.submit(UPLOAD_URL)
