"""
Enhancement Orchestrator

Runs the story enhancement pipeline over a raw transcript:

    1. follow-up questions      (text-gen)        critical
    2. enhanced narrative       (text-gen)        critical
    3. title                    (text-gen)        critical
    4. tags/category/summary    (text-gen)        critical
    5. sentiment                (classification)  non-critical
    6. emotions                 (classification)  non-critical
    7. illustration             (image-gen)       non-critical, background

followed by the narration leg (speech-gen), which runs inline or in the
background depending on settings.

Steps 1-6 run sequentially on the caller's thread and all read the transcript
(plus supplemental answers); only the image and speech legs read the
narrative from step 2. A failing critical step aborts the pipeline
with one EnhancementError; a failing non-critical step is logged with its
error kind and leaves its field empty. Background legs run on
the orchestrator's thread pool and update the live result through the
EnhancementHandle exactly once.
"""

import logging
import threading
import weakref
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from memorykeeper.config import AppConfig, EnhancementSettings
from memorykeeper.enhancement.errors import EnhancementError
from memorykeeper.enhancement.image_prompt import build_image_prompt
from memorykeeper.enhancement.normalize import (
    clean_title,
    count_words,
    extract_metadata,
    join_stories,
    normalize_emotions,
    normalize_sentiment,
    parse_follow_up_questions,
)
from memorykeeper.enhancement.prompt_cache import DailyPromptCache
from memorykeeper.enhancement.prompts.loader import PromptLoader
from memorykeeper.enhancement.prompts.renderer import PromptRenderer
from memorykeeper.enhancement.retry import retry_call
from memorykeeper.enhancement.schemas import (
    DeferredStatus,
    EnhancementRequest,
    EnhancementResult,
)
from memorykeeper.gateways.base import ProviderGateway
from memorykeeper.gateways.errors import (
    ConfigurationError,
    GatewayError,
    MalformedResponseError,
    error_kind,
)
from memorykeeper.gateways.factory import GatewayFactory
from memorykeeper.gateways.speech import AUDIO_CONTENT_TYPE
from memorykeeper.storage.base import BlobStore, create_blob_store
from memorykeeper.utils.logging_config import logging_config


logger = logging.getLogger(__name__)


TOTAL_STEPS = 7

DAILY_PROMPT_FALLBACK = "What's a happy memory that always makes you smile?"
CHAT_FALLBACK = "I'm having trouble remembering right now, dear."

STORY_CATEGORIES = (
    "CHILDHOOD",
    "FAMILY",
    "LOVE",
    "CAREER",
    "TRAVEL",
    "HOLIDAYS",
    "FRIENDSHIP",
    "MILITARY",
    "LIFE_LESSONS",
    "GENERAL",
)


@dataclass(frozen=True)
class PipelineStep:
    """One step of the enhancement pipeline.

    Attributes:
        number: Position in the pipeline (0 for the narration leg)
        name: Step name used in logs and errors
        critical: Whether a failure aborts the whole enhancement
    """
    number: int
    name: str
    critical: bool

    @property
    def label(self) -> str:
        if self.number:
            return f"Step {self.number}/{TOTAL_STEPS} ({self.name})"
        return self.name


QUESTIONS = PipelineStep(1, "follow_up_questions", critical=True)
NARRATIVE = PipelineStep(2, "narrative", critical=True)
TITLE = PipelineStep(3, "title", critical=True)
METADATA = PipelineStep(4, "metadata", critical=True)
SENTIMENT = PipelineStep(5, "sentiment", critical=False)
EMOTIONS = PipelineStep(6, "emotions", critical=False)
IMAGE = PipelineStep(7, "image", critical=False)
SPEECH = PipelineStep(0, "speech", critical=False)


@dataclass
class StepOutcome:
    """Explicit success/failure value of one step."""
    step: PipelineStep
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class EnhancementHandle:
    """Live view of one enhancement.

    ``result`` is returned as soon as the synchronous steps finish; the image
    (and, when configured, narration) legs keep updating it afterwards. Use
    ``snapshot()`` for a consistent copy and ``wait_for_image()`` to block
    until the illustration is settled.
    """

    def __init__(self, result: EnhancementResult, cancel_event: Optional[threading.Event] = None):
        self._result = result
        self._lock = threading.Lock()
        self.cancel_event = cancel_event or threading.Event()
        self.image_future: Optional[Future] = None
        self.speech_future: Optional[Future] = None

    @property
    def result(self) -> EnhancementResult:
        return self._result

    @property
    def lock(self) -> threading.Lock:
        return self._lock

    def snapshot(self) -> EnhancementResult:
        """Deep copy of the result taken under the handle lock."""
        with self._lock:
            return self._result.model_copy(deep=True)

    def update(self, **fields: Any) -> None:
        with self._lock:
            for name, value in fields.items():
                setattr(self._result, name, value)

    def wait_for_image(self, timeout: Optional[float] = None) -> Optional[str]:
        """Block until the image leg settles and return the image URL (None on failure).

        Raises:
            concurrent.futures.TimeoutError: the leg did not settle in time
        """
        return self._wait(self.image_future, timeout, lambda: self._result.image_url)

    def wait_for_speech(self, timeout: Optional[float] = None) -> Optional[str]:
        """Block until the narration leg settles and return the audio URL (None on failure)."""
        return self._wait(self.speech_future, timeout, lambda: self._result.speech_audio_url)

    def _wait(self, future: Optional[Future], timeout: Optional[float], current: Callable[[], Any]):
        if future is None:
            return current()
        try:
            return future.result(timeout)
        except CancelledError:
            return None
        except FuturesTimeoutError:
            raise
        except Exception:
            # failure already logged and recorded on the result
            return None

    def cancel(self) -> None:
        """Stop waiting on providers and drop background legs that have not started."""
        self.cancel_event.set()
        for future in (self.image_future, self.speech_future):
            if future is not None:
                future.cancel()

    @property
    def done(self) -> bool:
        return all(f is None or f.done() for f in (self.image_future, self.speech_future))


class EnhancementOrchestrator:
    """Coordinates gateways, normalizer, blob store and prompt cache.

    Only the text gateway is mandatory. A missing sentiment, emotion, image
    or speech gateway (or blob store) marks that leg as skipped.

    Example:
        >>> orchestrator = EnhancementOrchestrator(text_gateway=GroqTextGateway(config.groq))
        >>> handle = orchestrator.enhance(EnhancementRequest(transcript="We lived by the sea..."))
        >>> handle.result.title
        'Summers by the Sea'
    """

    def __init__(
        self,
        text_gateway: ProviderGateway,
        sentiment_gateway: Optional[ProviderGateway] = None,
        emotion_gateway: Optional[ProviderGateway] = None,
        image_gateway: Optional[ProviderGateway] = None,
        speech_gateway: Optional[ProviderGateway] = None,
        blob_store: Optional[BlobStore] = None,
        prompt_cache: Optional[DailyPromptCache] = None,
        prompt_loader: Optional[PromptLoader] = None,
        prompt_renderer: Optional[PromptRenderer] = None,
        settings: Optional[EnhancementSettings] = None,
        executor: Optional[ThreadPoolExecutor] = None,
        sleep: Optional[Callable[[float], None]] = None
    ):
        self.text_gateway = text_gateway
        self.sentiment_gateway = sentiment_gateway
        self.emotion_gateway = emotion_gateway
        self.image_gateway = image_gateway
        self.speech_gateway = speech_gateway
        self.blob_store = blob_store
        self.settings = settings or EnhancementSettings()
        self.prompt_cache = prompt_cache or DailyPromptCache(self.settings.daily_prompt_ttl)
        self.prompt_loader = prompt_loader or PromptLoader()
        self.prompt_renderer = prompt_renderer or PromptRenderer()
        self._sleep = sleep

        self._owns_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(
            max_workers=self.settings.background_workers,
            thread_name_prefix="memorykeeper-bg"
        )
        self._handles: "weakref.WeakSet[EnhancementHandle]" = weakref.WeakSet()
        self._closed = False

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        factory: Optional[GatewayFactory] = None,
        blob_store: Optional[BlobStore] = None
    ) -> 'EnhancementOrchestrator':
        """Build an orchestrator with gateways and blob store from configuration.

        Raises:
            ConfigurationError: text generation is not configured
        """
        factory = factory or GatewayFactory(config)
        settings = config.enhancement

        return cls(
            text_gateway=factory.create_text_gateway(),
            sentiment_gateway=_optional_gateway(factory.create_sentiment_gateway),
            emotion_gateway=_optional_gateway(factory.create_emotion_gateway),
            image_gateway=_optional_gateway(factory.create_image_gateway),
            speech_gateway=_optional_gateway(factory.create_speech_gateway),
            blob_store=blob_store or create_blob_store(config.storage),
            prompt_cache=DailyPromptCache(settings.daily_prompt_ttl),
            settings=settings
        )

    # ------------------------------------------------------------------
    # Story enhancement
    # ------------------------------------------------------------------

    def enhance(
        self,
        request: EnhancementRequest,
        on_image_ready: Optional[Callable[[str], None]] = None
    ) -> EnhancementHandle:
        """Run the enhancement pipeline.

        Args:
            request: Transcript and optional supplemental answers
            on_image_ready: Called once with the image URL when the
                illustration has been stored

        Returns:
            Handle whose result has every synchronous field populated

        Raises:
            EnhancementError: a critical step failed; later steps did not run
        """
        if self._closed:
            raise RuntimeError("EnhancementOrchestrator has been shut down")

        text = request.combined_text()
        handle = EnhancementHandle(EnhancementResult(word_count=count_words(text)))
        self._handles.add(handle)
        result = handle.result

        logger.info(f"Enhancing story ({result.word_count} words)")

        result.questions = self._require(self._run_step(
            QUESTIONS, lambda: parse_follow_up_questions(
                self._generate("follow_up_questions", transcript_text=text))
        ))

        narrative = self._require(self._run_step(
            NARRATIVE, lambda: self._generate_narrative(text)
        ))
        result.enhanced_narrative = narrative

        result.title = self._require(self._run_step(
            TITLE, lambda: clean_title(self._generate("title", transcript_text=text))
        ))

        result.apply_metadata(self._require(self._run_step(
            METADATA, lambda: extract_metadata(
                self._generate("metadata", transcript_text=text, categories=STORY_CATEGORIES))
        )))

        if self.sentiment_gateway is not None:
            outcome = self._run_step(
                SENTIMENT, lambda: normalize_sentiment(self.sentiment_gateway.invoke(text))
            )
            result.sentiment = outcome.value if outcome.ok else None
        else:
            logger.debug(f"{SENTIMENT.label} skipped: no sentiment gateway")

        if self.emotion_gateway is not None:
            outcome = self._run_step(
                EMOTIONS, lambda: normalize_emotions(self.emotion_gateway.invoke(text))
            )
            result.emotions = outcome.value if outcome.ok else []
        else:
            logger.debug(f"{EMOTIONS.label} skipped: no emotion gateway")

        self._start_image_leg(handle, narrative, result.title, on_image_ready)
        self._start_speech_leg(handle, narrative)

        logger.info(f"Story enhanced: '{result.title}' ({result.category}, "
                    f"image {result.image_status.value}, speech {result.speech_status.value})")
        return handle

    def _generate(self, prompt_name: str, **context: Any) -> str:
        """Render a prompt template and return the generated text."""
        request = self.prompt_renderer.render(self.prompt_loader.load_prompt(prompt_name), **context)
        return self.text_gateway.invoke(request).content

    def _generate_narrative(self, text: str) -> str:
        narrative = (self._generate("narrative", transcript_text=text) or "").strip()
        if not narrative:
            raise MalformedResponseError("Text generation returned an empty narrative")
        return narrative

    def _run_step(self, step: PipelineStep, func: Callable[[], Any]) -> StepOutcome:
        """Run one step and capture its outcome instead of raising."""
        attempts = self.settings.critical_step_attempts if step.critical else 1
        try:
            with logging_config.timed_operation(step.label):
                value = retry_call(
                    func,
                    max_attempts=max(1, attempts),
                    base_delay=self.settings.retry_base_delay,
                    description=step.label,
                    sleep=self._sleep
                )
        except Exception as e:
            if step.critical:
                logger.error(f"{step.label} failed ({error_kind(e)}): {e}")
            else:
                logger.warning(f"{step.label} failed ({error_kind(e)}), continuing without it: {e}")
            return StepOutcome(step=step, error=e)

        return StepOutcome(step=step, value=value)

    def _require(self, outcome: StepOutcome) -> Any:
        """Return a critical step's value or abort the pipeline."""
        if outcome.ok:
            return outcome.value
        raise EnhancementError(
            f"Enhancement failed at {outcome.step.label}: {outcome.error}",
            step=outcome.step.name,
            step_number=outcome.step.number,
            cause=outcome.error
        ) from outcome.error

    # ------------------------------------------------------------------
    # Deferred legs
    # ------------------------------------------------------------------

    def generate_story_image(
        self,
        narrative: str,
        title: str,
        cancel_event: Optional[threading.Event] = None
    ) -> Future:
        """Generate and store an illustration in the background.

        Returns:
            Future resolving to the stored image URL, or raising the
            gateway/storage error
        """
        if self.image_gateway is None or self.blob_store is None:
            raise ConfigurationError("Image generation requires an image gateway and a blob store")
        return self.executor.submit(self._create_story_image, narrative, title, cancel_event)

    def _create_story_image(
        self,
        narrative: str,
        title: str,
        cancel_event: Optional[threading.Event] = None
    ) -> str:
        prompt = build_image_prompt(narrative, title)
        with logging_config.timed_operation(IMAGE.label):
            image = self.image_gateway.invoke(prompt, cancel_event=cancel_event)
            url = self.blob_store.store(image.data, image.content_type)
        logger.info(f"{IMAGE.label} stored at {url}")
        return url

    def _start_image_leg(
        self,
        handle: EnhancementHandle,
        narrative: str,
        title: str,
        on_image_ready: Optional[Callable[[str], None]]
    ) -> None:
        if self.image_gateway is None or self.blob_store is None:
            handle.update(image_status=DeferredStatus.SKIPPED)
            logger.debug(f"{IMAGE.label} skipped: no image gateway or blob store")
            return

        handle.update(image_status=DeferredStatus.PENDING)
        future = self.executor.submit(self._image_leg, handle, narrative, title, on_image_ready)
        future.add_done_callback(lambda f: self._mark_cancelled(handle, f, "image"))
        handle.image_future = future

    def _image_leg(
        self,
        handle: EnhancementHandle,
        narrative: str,
        title: str,
        on_image_ready: Optional[Callable[[str], None]]
    ) -> str:
        try:
            url = self._create_story_image(narrative, title, handle.cancel_event)
        except Exception as e:
            logger.warning(f"{IMAGE.label} failed ({error_kind(e)}): {e}")
            handle.update(image_status=DeferredStatus.FAILED, image_error=str(e))
            raise

        handle.update(image_url=url, image_status=DeferredStatus.SUCCEEDED, image_error=None)

        if on_image_ready is not None:
            try:
                on_image_ready(url)
            except Exception as e:
                logger.error(f"Image continuation raised {type(e).__name__}: {e}")
        return url

    def _start_speech_leg(self, handle: EnhancementHandle, narrative: str) -> None:
        if self.speech_gateway is None or self.blob_store is None or not narrative.strip():
            handle.update(speech_status=DeferredStatus.SKIPPED)
            logger.debug("Narration skipped: no speech gateway, blob store or narrative")
            return

        handle.update(speech_status=DeferredStatus.PENDING)
        if self.settings.speech_inline:
            self._speech_leg(handle, narrative, reraise=False)
            return

        future = self.executor.submit(self._speech_leg, handle, narrative)
        future.add_done_callback(lambda f: self._mark_cancelled(handle, f, "speech"))
        handle.speech_future = future

    def _speech_leg(self, handle: EnhancementHandle, narrative: str, reraise: bool = True) -> Optional[str]:
        try:
            with logging_config.timed_operation(SPEECH.label):
                audio = self.speech_gateway.invoke(narrative)
                url = self.blob_store.store(audio, AUDIO_CONTENT_TYPE)
        except Exception as e:
            logger.warning(f"Narration failed ({error_kind(e)}), continuing without audio: {e}")
            handle.update(speech_status=DeferredStatus.FAILED, speech_error=str(e))
            if reraise:
                raise
            return None

        handle.update(speech_audio_url=url, speech_status=DeferredStatus.SUCCEEDED, speech_error=None)
        logger.info(f"Narration stored at {url}")
        return url

    @staticmethod
    def _mark_cancelled(handle: EnhancementHandle, future: Future, leg: str) -> None:
        if future.cancelled():
            handle.update(**{f"{leg}_status": DeferredStatus.SKIPPED, f"{leg}_error": "cancelled"})
            logger.info(f"{leg} leg cancelled before it started")

    # ------------------------------------------------------------------
    # Prompts and conversation
    # ------------------------------------------------------------------

    def generate_daily_prompt(self, category: str) -> str:
        """Return the memory prompt for a category, generating it at most once.

        Provider failures return a fixed fallback question that is not cached,
        so the next call tries the provider again.
        """
        if not category or not category.strip():
            raise ValueError("category cannot be empty")

        category = category.strip()
        prompt = self.prompt_cache.get_or_compute(category, lambda: self._compute_daily_prompt(category))
        return prompt if prompt is not None else DAILY_PROMPT_FALLBACK

    def _compute_daily_prompt(self, category: str) -> Optional[str]:
        try:
            content = self._generate("daily_prompt", category=category)
        except (GatewayError, EnhancementError) as e:
            logger.warning(f"Daily prompt for {category} failed ({error_kind(e)}), using fallback: {e}")
            return None

        content = (content or "").strip().strip('"').strip()
        if not content:
            logger.warning(f"Daily prompt for {category} was empty, using fallback")
            return None
        return content

    def chat_with_grandparent(
        self,
        stories: Iterable[str],
        question: str,
        grandparent_name: str = "Grandma"
    ) -> str:
        """Answer a question in the voice of a grandparent, grounded in their stories.

        Any provider failure yields a gentle fixed reply.
        """
        if not question or not question.strip():
            raise ValueError("question cannot be empty")

        try:
            reply = self._generate(
                "grandparent_chat",
                stories=join_stories(stories),
                question=question.strip(),
                grandparent_name=grandparent_name
            )
        except (GatewayError, EnhancementError) as e:
            logger.warning(f"Grandparent chat failed ({error_kind(e)}): {e}")
            return CHAT_FALLBACK

        return reply.strip() or CHAT_FALLBACK

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def shutdown(self, wait: bool = True, cancel_pending: bool = False) -> None:
        """Stop accepting work and release the background pool.

        Args:
            wait: Block until running background legs finish
            cancel_pending: Cancel in-flight handles and queued legs first
        """
        self._closed = True
        if cancel_pending:
            for handle in list(self._handles):
                handle.cancel()
        if self._owns_executor:
            self.executor.shutdown(wait=wait, cancel_futures=cancel_pending)

    def __enter__(self) -> 'EnhancementOrchestrator':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown(wait=True)


def _optional_gateway(create: Callable[[], ProviderGateway]) -> Optional[ProviderGateway]:
    """Build a non-critical gateway, or None when it is not configured."""
    try:
        return create()
    except ConfigurationError as e:
        logger.warning(f"{e} The dependent enhancement step will be skipped.")
        return None
