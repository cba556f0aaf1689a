"""Image-to-video orchestration over a remote long-running operation."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Protocol

from config.settings import AppConfig
from modules.pipelines.progress import PROGRESS_COMPLETE, estimate_progress
from modules.services.errors import AnimationError, ErrorClassifier, NoVideoReturned
from modules.services.veo_client import JobHandle, JobStatus, VeoClient, VideoArtifact
from modules.utils.image_utils import ImageSource, load_image_payload

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


class RemoteJobClient(Protocol):
    model: str

    def submit(self, image_bytes: bytes, mime_type: str, aspect_hint: str) -> JobHandle: ...

    def poll(self, handle: JobHandle) -> JobStatus: ...

    def fetch_artifact(self, locator: str) -> VideoArtifact: ...


class OrchestrationState(str, Enum):
    """Lifecycle of a single animate() run."""

    IDLE = "idle"
    SUBMITTING = "submitting"
    POLLING = "polling"
    RESOLVING = "resolving"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class _ProgressSinkError(Exception):
    """Wraps a failure raised by the caller's progress callback."""

    def __init__(self, original: Exception) -> None:
        super().__init__(str(original))
        self.original = original


class JobState(str, Enum):
    PENDING = "pending"
    DONE = "done"


@dataclass(slots=True)
class Job:
    """Remote operation tracked by one orchestration run."""

    handle: JobHandle
    submitted_at: float
    status: JobState = JobState.PENDING
    result_locator: Optional[str] = None
    model_identifier: Optional[str] = None


@dataclass(slots=True)
class AnimationResult:
    """Result payload produced by the image-to-video pipeline."""

    artifact: VideoArtifact
    duration_ms: int
    model_identifier: str


class Image2VideoService:
    """Drive submit → poll → download for one image at a time.

    Callers must not start a second run while one is in flight.
    """

    def __init__(
        self,
        config: AppConfig,
        client: Optional[RemoteJobClient] = None,
        classifier: Optional[ErrorClassifier] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self.client: RemoteJobClient = client or VeoClient(config)
        self.classifier = classifier or ErrorClassifier(config.passthrough_error_categories)
        self._sleep = sleep
        self._clock = clock
        self.state = OrchestrationState.IDLE

    def _transition(self, state: OrchestrationState) -> None:
        logger.debug("Animation state %s -> %s", self.state.value, state.value)
        self.state = state

    def _elapsed_ms(self, since: float) -> int:
        return int((self._clock() - since) * 1000)

    def animate(
        self, image: ImageSource, on_progress: Optional[ProgressCallback] = None
    ) -> AnimationResult:
        """Animate ``image`` and return the downloaded video.

        Raises an :class:`AnimationError` subclass on any failure. Exceptions raised by
        ``on_progress`` propagate unchanged.
        """
        report: ProgressCallback = on_progress or (lambda _pct: None)
        started = self._clock()
        try:
            job = self._submit(image)
            self._poll_until_done(job, report)
            artifact = self._resolve(job)
        except AnimationError:
            self._transition(OrchestrationState.FAILED)
            raise
        except _ProgressSinkError as exc:
            # Callback failures belong to the caller and are not classified.
            self._transition(OrchestrationState.FAILED)
            raise exc.original from None
        except Exception as exc:  # noqa: BLE001
            self._transition(OrchestrationState.FAILED)
            classified = self.classifier.classify(exc)
            logger.warning("Animation failed (%s): %s", classified.category, exc)
            raise classified from exc

        self._transition(OrchestrationState.SUCCEEDED)
        report(PROGRESS_COMPLETE)
        duration_ms = self._elapsed_ms(started)
        model = job.model_identifier or self.client.model
        logger.info("Animation finished in %d ms with %s", duration_ms, model)
        return AnimationResult(artifact=artifact, duration_ms=duration_ms, model_identifier=model)

    def _submit(self, image: ImageSource) -> Job:
        self._transition(OrchestrationState.SUBMITTING)
        payload = load_image_payload(image)
        handle = self.client.submit(payload.data, payload.mime_type, payload.aspect_hint)
        return Job(handle=handle, submitted_at=self._clock())

    def _poll_until_done(self, job: Job, report: ProgressCallback) -> None:
        self._transition(OrchestrationState.POLLING)
        last_reported = 0
        while job.status is JobState.PENDING:
            self._sleep(self.config.poll_interval_seconds)
            status = self.client.poll(job.handle)
            if status.done:
                job.status = JobState.DONE
                job.result_locator = status.result_locator
                job.model_identifier = status.model_identifier
                break
            progress = estimate_progress(
                self._elapsed_ms(job.submitted_at), self.config.expected_duration_ms
            )
            last_reported = max(last_reported, progress)
            logger.debug("Operation %s pending (%d%%)", job.handle.name, last_reported)
            try:
                report(last_reported)
            except Exception as exc:  # noqa: BLE001
                raise _ProgressSinkError(exc) from exc

    def _resolve(self, job: Job) -> VideoArtifact:
        self._transition(OrchestrationState.RESOLVING)
        if not job.result_locator:
            raise NoVideoReturned()
        return self.client.fetch_artifact(job.result_locator)
