"""
AssemblyAI Transcription Gateway

Speech-to-text in three provider calls: upload the audio bytes, submit a
transcript job for the returned upload URL, then poll the job until it is
completed or errored.
"""

import logging
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

import requests

from memorykeeper.config import AssemblyAIConfig
from memorykeeper.gateways.base import HTTPGateway
from memorykeeper.gateways.errors import MalformedResponseError
from memorykeeper.jobs.models import JobStatus, ProviderJob
from memorykeeper.jobs.poller import JobPoller, PollingPolicy


logger = logging.getLogger(__name__)


ASSEMBLYAI_STATUS = {
    "queued": JobStatus.PENDING,
    "processing": JobStatus.RUNNING,
    "completed": JobStatus.SUCCEEDED,
    "error": JobStatus.FAILED,
}


class AssemblyAITranscriptionGateway(HTTPGateway):
    """AssemblyAI v2 transcription (upload + submit + poll)."""

    provider_name = "assemblyai"

    def __init__(
        self,
        config: AssemblyAIConfig,
        session: Optional[requests.Session] = None,
        sleep: Optional[Callable[[float], None]] = None
    ):
        super().__init__(config.connect_timeout, config.read_timeout, session)
        self.config = config
        self.poller = JobPoller(
            PollingPolicy(interval=config.poll_interval, max_attempts=config.poll_max_attempts),
            sleep=sleep,
            name=self.provider_name
        )

    @property
    def base_url(self) -> str:
        return self.config.api_url.rstrip('/')

    def _auth_headers(self) -> Dict[str, str]:
        return {"authorization": self.config.api_key}

    def validate_requirements(self) -> List[str]:
        if not self.config.api_key:
            return ["AssemblyAI API key not configured. Set ASSEMBLYAI_API_KEY."]
        return []

    def upload(self, audio: bytes) -> str:
        """Upload raw audio and return the provider-hosted URL."""
        if not audio:
            raise ValueError("Cannot transcribe empty audio")

        response = self._send(
            "POST",
            f"{self.base_url}/upload",
            headers={"Content-Type": "application/octet-stream"},
            data=audio
        )
        data = self._parse_json(response)
        upload_url = data.get("upload_url") if isinstance(data, dict) else None
        if not upload_url:
            raise MalformedResponseError(
                "AssemblyAI upload response has no upload_url",
                provider=self.provider_name
            )
        logger.debug(f"AssemblyAI upload complete ({len(audio)} bytes)")
        return upload_url

    def submit(self, audio_url: str) -> str:
        """Create a transcript job and return its id."""
        response = self._send(
            "POST",
            f"{self.base_url}/transcript",
            headers={"Content-Type": "application/json"},
            json={"audio_url": audio_url}
        )
        data = self._parse_json(response)
        transcript_id = data.get("id") if isinstance(data, dict) else None
        if not transcript_id:
            raise MalformedResponseError(
                "AssemblyAI transcript response has no id",
                provider=self.provider_name
            )
        return transcript_id

    def fetch_job(self, transcript_id: str) -> ProviderJob:
        """Fetch the current state of a transcript job."""
        data = self._parse_json(self._send("GET", f"{self.base_url}/transcript/{transcript_id}"))

        if not isinstance(data, dict) or data.get("status") not in ASSEMBLYAI_STATUS:
            raise MalformedResponseError(
                f"AssemblyAI transcript {transcript_id} has unknown status: {str(data)[:200]}",
                provider=self.provider_name
            )

        status = ASSEMBLYAI_STATUS[data["status"]]
        return ProviderJob(
            id=transcript_id,
            status=status,
            result=(data.get("text") or "") if status == JobStatus.SUCCEEDED else None,
            error=data.get("error")
        )

    def invoke(
        self,
        audio: Union[bytes, str, Path],
        cancel_event: Optional[threading.Event] = None
    ) -> str:
        """Transcribe audio bytes (or a local audio file) to text.

        Raises:
            GatewayError: upload/submit failure, job error, poll timeout or cancellation
        """
        if isinstance(audio, (str, Path)):
            audio = Path(audio).read_bytes()

        audio_url = self.upload(audio)
        text = self.poller.run(
            submit=lambda: self.submit(audio_url),
            fetch=self.fetch_job,
            cancel_event=cancel_event
        )
        logger.info(f"AssemblyAI transcription complete ({len(text.split())} words)")
        return text

    transcribe_audio = invoke
