"""
Unit Tests: memory-keeper CLI

Runs the click group with CliRunner. Orchestrators and gateways are replaced
with mocks so no command reaches a provider.

**Test Coverage:**
- Group help, version and subcommand registration
- enhance: JSON output, image wait/timeout, validation and error exit codes
- transcribe: output and error exit codes
- daily-prompt and chat
- Invalid configuration file
- exit_code_for mapping
"""

import importlib
import json
import logging
from concurrent.futures import TimeoutError as FuturesTimeoutError
from unittest.mock import MagicMock, Mock, patch

import pytest
from click.testing import CliRunner

from cli import main
from cli.help_texts import ExitCodes
from cli.shared_options import exit_code_for
from memorykeeper.enhancement.errors import EnhancementError
from memorykeeper.enhancement.schemas import DeferredStatus, EnhancementResult
from memorykeeper.gateways.errors import (
    ConfigurationError,
    HTTPStatusError,
    JobFailedError,
    MalformedResponseError,
    PollTimeoutError,
    TransientNetworkError,
)
from memorykeeper.utils.logging_config import logging_config

# cli/__init__.py rebinds the command names, so fetch the modules themselves
enhance_module = importlib.import_module("cli.enhance")
prompt_module = importlib.import_module("cli.prompt")
transcribe_module = importlib.import_module("cli.transcribe")


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def restore_logging():
    """The group configures root logging against CliRunner's streams."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    logging_config.reset()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def transcript_file(tmp_path):
    path = tmp_path / "grandma.txt"
    path.write_text("We baked bread every Sunday at Grandma's house.", encoding="utf-8")
    return path


def make_result(**overrides):
    fields = dict(
        questions=["Where was the kitchen?"],
        enhanced_narrative="Every Sunday we baked bread.",
        title="Grandma's Kitchen",
        summary="Sunday baking.",
        tags=["family"],
        category="CHILDHOOD",
        word_count=8,
        image_url="file:///tmp/blobs/images/1.png",
        image_status=DeferredStatus.SUCCEEDED,
    )
    fields.update(overrides)
    return EnhancementResult(**fields)


@pytest.fixture
def handle():
    handle = Mock()
    handle.wait_for_image.return_value = "file:///tmp/blobs/images/1.png"
    handle.snapshot.return_value = make_result()
    return handle


@pytest.fixture
def orchestrator(handle):
    orchestrator = MagicMock()
    orchestrator.__enter__.return_value = orchestrator
    orchestrator.enhance.return_value = handle
    return orchestrator


# ============================================================================
# Test: group
# ============================================================================

def test_help_lists_subcommands(runner):
    result = runner.invoke(main, ['--help'])

    assert result.exit_code == 0
    for command in ("enhance", "transcribe", "daily-prompt", "chat"):
        assert command in result.output


def test_version(runner):
    result = runner.invoke(main, ['--version'])

    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_invalid_config_file(runner, tmp_path, transcript_file):
    config_path = tmp_path / "bad.yaml"
    config_path.write_text("- not\n- a mapping\n")

    result = runner.invoke(main, ['-c', str(config_path), 'enhance', '-i', str(transcript_file)])

    assert result.exit_code == ExitCodes.INVALID_CONFIGURATION
    assert "Configuration Error" in result.output


# ============================================================================
# Test: enhance
# ============================================================================

def test_enhance_writes_result_json(runner, transcript_file, tmp_path, orchestrator, handle):
    answers = tmp_path / "answers.txt"
    answers.write_text("It was 1962.", encoding="utf-8")
    output = tmp_path / "story.json"

    with patch.object(enhance_module, 'build_orchestrator', return_value=orchestrator) as build:
        result = runner.invoke(main, [
            '--log-level', 'error', 'enhance',
            '-i', str(transcript_file), '-a', str(answers), '-o', str(output)
        ])

    assert result.exit_code == 0, result.output
    build.assert_called_once()
    request = orchestrator.enhance.call_args.args[0]
    assert request.transcript == "We baked bread every Sunday at Grandma's house."
    assert request.supplemental_answers == "It was 1962."
    handle.wait_for_image.assert_called_once_with(timeout=300.0)

    data = json.loads(output.read_text(encoding="utf-8"))
    assert data["title"] == "Grandma's Kitchen"
    assert data["category"] == "CHILDHOOD"
    assert data["image_status"] == "succeeded"
    assert data["image_url"] == "file:///tmp/blobs/images/1.png"


def test_enhance_reads_stdin(runner, orchestrator):
    with patch.object(enhance_module, 'build_orchestrator', return_value=orchestrator):
        result = runner.invoke(main, ['--log-level', 'error', 'enhance', '-i', '-'],
                               input="Grandpa sailed to Lisbon in 1958.")

    assert result.exit_code == 0, result.output
    assert orchestrator.enhance.call_args.args[0].transcript == "Grandpa sailed to Lisbon in 1958."
    assert '"title": "Grandma\'s Kitchen"' in result.output


def test_enhance_no_wait_image(runner, transcript_file, orchestrator, handle):
    handle.snapshot.return_value = make_result(image_url=None, image_status=DeferredStatus.PENDING)

    with patch.object(enhance_module, 'build_orchestrator', return_value=orchestrator):
        result = runner.invoke(main, ['--log-level', 'error', 'enhance', '-i', str(transcript_file),
                                      '--no-wait-image'])

    assert result.exit_code == 0, result.output
    handle.wait_for_image.assert_not_called()
    handle.cancel.assert_called_once()
    assert '"image_status": "pending"' in result.output


def test_enhance_image_timeout_still_writes_result(runner, transcript_file, orchestrator, handle):
    handle.wait_for_image.side_effect = FuturesTimeoutError()

    with patch.object(enhance_module, 'build_orchestrator', return_value=orchestrator):
        result = runner.invoke(main, ['--log-level', 'error', 'enhance', '-i', str(transcript_file),
                                      '--image-timeout', '1'])

    assert result.exit_code == 0, result.output
    assert "not ready after 1.0s" in result.output
    handle.cancel.assert_called()
    handle.snapshot.assert_called_once()


def test_enhance_blank_transcript(runner, tmp_path):
    blank = tmp_path / "blank.txt"
    blank.write_text("   \n", encoding="utf-8")

    with patch.object(enhance_module, 'build_orchestrator') as build:
        result = runner.invoke(main, ['enhance', '-i', str(blank)])

    assert result.exit_code == ExitCodes.MISSING_REQUIRED_OPTION
    assert "Invalid transcript" in result.output
    build.assert_not_called()


def test_enhance_missing_input_option(runner):
    result = runner.invoke(main, ['enhance'])

    assert result.exit_code == 2
    assert "Missing option" in result.output


def test_enhance_critical_failure(runner, transcript_file, orchestrator):
    orchestrator.enhance.side_effect = EnhancementError(
        "Enhancement failed at Step 2/7 (narrative)",
        step="narrative",
        step_number=2,
        cause=HTTPStatusError("groq API request failed: 500", status=500, provider="groq")
    )

    with patch.object(enhance_module, 'build_orchestrator', return_value=orchestrator):
        result = runner.invoke(main, ['--log-level', 'error', 'enhance', '-i', str(transcript_file)])

    assert result.exit_code == ExitCodes.ENHANCEMENT_FAILED
    assert "Enhancement Error" in result.output
    assert "Step 2/7 (narrative)" in result.output


def test_enhance_missing_credentials(runner, transcript_file):
    error = ConfigurationError("Groq API key not configured. Set GROQ_API_KEY.", provider="groq")

    with patch.object(enhance_module, 'build_orchestrator', side_effect=error):
        result = runner.invoke(main, ['enhance', '-i', str(transcript_file)])

    assert result.exit_code == ExitCodes.INVALID_CONFIGURATION
    assert "GROQ_API_KEY" in result.output
    assert "Setup instructions" in result.output


# ============================================================================
# Test: transcribe
# ============================================================================

@pytest.fixture
def audio_file(tmp_path):
    path = tmp_path / "grandpa.mp3"
    path.write_bytes(b"ID3fake-audio")
    return path


def _factory_with(gateway):
    factory = Mock()
    factory.create_transcription_gateway.return_value = gateway
    return Mock(return_value=factory)


def test_transcribe_prints_text(runner, audio_file):
    gateway = Mock()
    gateway.invoke.return_value = "We moved to the farm in 1962."

    with patch.object(transcribe_module, 'GatewayFactory', _factory_with(gateway)):
        result = runner.invoke(main, ['--log-level', 'error', 'transcribe', '-i', str(audio_file)])

    assert result.exit_code == 0, result.output
    assert "We moved to the farm in 1962." in result.output
    gateway.invoke.assert_called_once_with(str(audio_file))


def test_transcribe_writes_output_file(runner, audio_file, tmp_path):
    gateway = Mock()
    gateway.invoke.return_value = "hello"
    output = tmp_path / "out.txt"

    with patch.object(transcribe_module, 'GatewayFactory', _factory_with(gateway)):
        result = runner.invoke(main, ['transcribe', '-i', str(audio_file), '-o', str(output)])

    assert result.exit_code == 0, result.output
    assert output.read_text(encoding="utf-8") == "hello\n"


@pytest.mark.parametrize("error,code", [
    (JobFailedError("assemblyai job tr-1 failed: corrupt", job_id="tr-1", reason="corrupt",
                    provider="assemblyai"), ExitCodes.JOB_FAILED),
    (PollTimeoutError("assemblyai job tr-1 did not finish", job_id="tr-1", attempts=60),
     ExitCodes.JOB_FAILED),
    (HTTPStatusError("unauthorized", status=401, provider="assemblyai"), ExitCodes.AUTHENTICATION_ERROR),
    (TransientNetworkError("timed out", provider="assemblyai"), ExitCodes.NETWORK_ERROR),
])
def test_transcribe_errors(runner, audio_file, error, code):
    gateway = Mock()
    gateway.invoke.side_effect = error

    with patch.object(transcribe_module, 'GatewayFactory', _factory_with(gateway)):
        result = runner.invoke(main, ['transcribe', '-i', str(audio_file)])

    assert result.exit_code == code
    assert "Transcription failed" in result.output


def test_transcribe_missing_file(runner):
    result = runner.invoke(main, ['transcribe', '-i', 'nowhere.mp3'])

    assert result.exit_code == 2


# ============================================================================
# Test: daily-prompt / chat
# ============================================================================

def test_daily_prompt(runner):
    orchestrator = MagicMock()
    orchestrator.__enter__.return_value = orchestrator
    orchestrator.generate_daily_prompt.return_value = "What was your favorite toy?"

    with patch.object(prompt_module, 'build_text_orchestrator', return_value=orchestrator):
        result = runner.invoke(main, ['--log-level', 'error', 'daily-prompt', 'childhood'])

    assert result.exit_code == 0, result.output
    assert "What was your favorite toy?" in result.output
    orchestrator.generate_daily_prompt.assert_called_once_with("CHILDHOOD")


def test_daily_prompt_default_category(runner):
    orchestrator = MagicMock()
    orchestrator.__enter__.return_value = orchestrator
    orchestrator.generate_daily_prompt.return_value = "prompt"

    with patch.object(prompt_module, 'build_text_orchestrator', return_value=orchestrator):
        runner.invoke(main, ['daily-prompt'])

    orchestrator.generate_daily_prompt.assert_called_once_with("GENERAL")


def test_chat(runner, tmp_path):
    first = tmp_path / "fishing.txt"
    first.write_text("We fished every summer.", encoding="utf-8")
    second = tmp_path / "boat.txt"
    second.write_text("Grandpa built the boat.", encoding="utf-8")
    orchestrator = MagicMock()
    orchestrator.__enter__.return_value = orchestrator
    orchestrator.chat_with_grandparent.return_value = "Oh, we loved that boat, dear."

    with patch.object(prompt_module, 'build_text_orchestrator', return_value=orchestrator):
        result = runner.invoke(main, ['--log-level', 'error', 'chat', '-s', str(first), '-s', str(second),
                                      '-q', 'Who built the boat?', '-n', 'Grandpa Joe'])

    assert result.exit_code == 0, result.output
    assert "Oh, we loved that boat, dear." in result.output
    orchestrator.chat_with_grandparent.assert_called_once_with(
        ["We fished every summer.", "Grandpa built the boat."],
        "Who built the boat?",
        grandparent_name="Grandpa Joe"
    )


def test_chat_blank_question(runner, tmp_path):
    story = tmp_path / "story.txt"
    story.write_text("story", encoding="utf-8")

    result = runner.invoke(main, ['chat', '-s', str(story), '-q', '   '])

    assert result.exit_code == 2
    assert "question cannot be empty" in result.output


def test_chat_missing_credentials(runner, tmp_path):
    story = tmp_path / "story.txt"
    story.write_text("story", encoding="utf-8")

    with patch.object(prompt_module, 'build_text_orchestrator',
                      side_effect=ConfigurationError("Groq API key not configured.", provider="groq")):
        result = runner.invoke(main, ['chat', '-s', str(story), '-q', 'Hello?'])

    assert result.exit_code == ExitCodes.INVALID_CONFIGURATION


# ============================================================================
# Test: exit codes
# ============================================================================

@pytest.mark.parametrize("error,code", [
    (ConfigurationError("no key"), ExitCodes.INVALID_CONFIGURATION),
    (EnhancementError("failed", cause=ConfigurationError("no key")), ExitCodes.INVALID_CONFIGURATION),
    (EnhancementError("failed", cause=MalformedResponseError("junk")), ExitCodes.ENHANCEMENT_FAILED),
    (EnhancementError("template broken"), ExitCodes.ENHANCEMENT_FAILED),
    (HTTPStatusError("forbidden", status=403), ExitCodes.AUTHENTICATION_ERROR),
    (HTTPStatusError("teapot", status=418), ExitCodes.GENERAL_ERROR),
    (RuntimeError("unexpected"), ExitCodes.GENERAL_ERROR),
])
def test_exit_code_for(error, code):
    assert exit_code_for(error) == code
