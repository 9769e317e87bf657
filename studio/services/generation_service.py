"""Generation request lifecycle: submission, retry with backoff and abort."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, List, Optional

from config.settings import AppConfig
from studio.services.cancellation import AbortCoordinator
from studio.services.generation_client import (
    GenerationError,
    GenerationRequest,
    GenerationResponse,
    SimulatedGenerationClient,
)
from studio.services.history_service import FormState, GenerationHistoryService, HistoryEntry
from studio.services.storage_service import StorageService
from studio.styles.style_presets import StylePresetRegistry, default_registry
from studio.utils.image_utils import (
    PROCESSING_FAILED_MESSAGE,
    UNSUPPORTED_TYPE_MESSAGE,
    ImageProcessingError,
    ImageValidationError,
    UploadedImage,
    downscale_image_if_needed,
    is_valid_image_file,
    is_within_size_limit,
)

logger = logging.getLogger(__name__)

MISSING_INPUT_MESSAGE = "Please provide an image, prompt, and style."
CANCELLED_MESSAGE = "Generation cancelled"
SUCCESS_MESSAGE = "Generation completed successfully!"
GENERIC_FAILURE_MESSAGE = "Failed to generate image"


class GenerationState(str, Enum):
    """Lifecycle states of a generate() call."""

    IDLE = "idle"
    SUBMITTING = "submitting"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    ABORTED = "aborted"
    FAILED = "failed"


TERMINAL_STATES = frozenset({GenerationState.SUCCEEDED, GenerationState.ABORTED, GenerationState.FAILED})

StateListener = Callable[[GenerationState, "GenerationController"], None]


class GenerationController:
    """Form state plus the single-flight retry state machine behind it.

    The UI sets the image, prompt and style, then awaits ``generate()`` and
    reads ``state``, ``result``, ``error``, ``notice`` and ``retry_count``.
    ``abort()`` may be called while ``generate()`` is pending.
    """

    def __init__(
        self,
        config: AppConfig,
        client: Optional[Any] = None,
        history: Optional[GenerationHistoryService] = None,
        style_registry: Optional[StylePresetRegistry] = None,
        abort_coordinator: Optional[AbortCoordinator] = None,
    ) -> None:
        self.config = config
        self.client = client or SimulatedGenerationClient(config)
        self.history_service = history or GenerationHistoryService(
            StorageService(config.storage_path),
            key=config.history_key,
            limit=config.history_limit,
        )
        self.style_registry = style_registry or default_registry()
        self._abort = abort_coordinator or AbortCoordinator()
        self._listeners: List[StateListener] = []

        self.image_data_url: Optional[str] = None
        self.prompt: str = ""
        self.style: str = config.default_style
        self.state = GenerationState.IDLE
        self.is_loading = False
        self.error: Optional[str] = None
        self.notice: Optional[str] = None
        self.result: Optional[GenerationResponse] = None
        self.retry_count = 0

        self._in_flight = False
        self._abort_requested = False

    # Form state ---------------------------------------------------------------
    @property
    def history(self) -> List[HistoryEntry]:
        return self.history_service.list()

    @property
    def is_busy(self) -> bool:
        return self._in_flight

    def set_image_data_url(self, data_url: Optional[str]) -> None:
        self.image_data_url = data_url or None

    def clear_image(self) -> None:
        self.image_data_url = None

    def set_prompt(self, text: str) -> None:
        self.prompt = text or ""

    def set_style(self, style_id: str) -> None:
        """Select a style; unknown ids raise ``KeyError``."""
        self.style = self.style_registry.get(style_id).id

    def clear_error(self) -> None:
        self.error = None

    async def load_image(self, upload: UploadedImage) -> str:
        """Validate and normalize an upload, then use it as the form image."""
        if not is_valid_image_file(upload):
            self.image_data_url = None
            self.error = UNSUPPORTED_TYPE_MESSAGE
            raise ImageValidationError(UNSUPPORTED_TYPE_MESSAGE)

        if not is_within_size_limit(upload, self.config.max_upload_bytes):
            logger.info(
                "Upload %s is %d bytes, above the %d byte limit; it will be downscaled",
                upload.name,
                upload.size,
                self.config.max_upload_bytes,
            )

        try:
            data_url = await downscale_image_if_needed(upload, self.config.max_image_width)
        except ImageProcessingError:
            logger.exception("Image processing failed for %s", upload.name)
            self.image_data_url = None
            self.error = PROCESSING_FAILED_MESSAGE
            raise

        self.image_data_url = data_url
        self.error = None
        return data_url

    def restore_from_history(self, entry_id: str) -> FormState:
        """Repopulate the form from a history entry."""
        entry = self.history_service.get(entry_id)
        form = self.history_service.restore(entry)
        self.image_data_url = form.image_data_url
        self.prompt = form.prompt
        self.style = form.style
        self.result = entry
        self.error = None
        self.notice = None
        return form

    # Observers ----------------------------------------------------------------
    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state-transition listener; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _transition(self, state: GenerationState) -> None:
        logger.debug("Generation state %s -> %s", self.state.value, state.value)
        self.state = state
        for listener in list(self._listeners):
            try:
                listener(state, self)
            except Exception:  # noqa: BLE001
                logger.exception("State listener %r failed", listener)

    # Lifecycle ----------------------------------------------------------------
    def backoff_delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        return self.config.backoff_base_s * (2 ** (attempt - 1))

    def abort(self) -> bool:
        """Cancel the running generation. Returns False when nothing is running."""
        if not self._in_flight:
            return False
        self._abort_requested = True
        self._abort.abort()
        logger.info("Abort requested")
        return True

    async def generate(self) -> Optional[GenerationResponse]:
        """Submit the current form, retrying transient failures.

        Returns the response on success and None otherwise; the outcome is
        also reflected in ``state`` and ``error``.
        """
        if self._in_flight:
            logger.debug("generate() ignored: a request is already in flight")
            return None
        if not (self.image_data_url and self.prompt.strip() and self.style):
            self.error = MISSING_INPUT_MESSAGE
            return None

        self._in_flight = True
        self._abort_requested = False
        self.is_loading = True
        self.error = None
        self.notice = None
        self.result = None
        self.retry_count = 0
        image_data_url, prompt, style = self.image_data_url, self.prompt, self.style
        try:
            return await self._run(image_data_url, prompt, style)
        except asyncio.CancelledError:
            self._finish_aborted()
            raise
        finally:
            self._in_flight = False
            self.is_loading = False

    async def _run(self, image_data_url: str, prompt: str, style: str) -> Optional[GenerationResponse]:
        attempt = 0
        while True:
            if self._abort_requested:
                return self._finish_aborted()

            attempt += 1
            self._transition(GenerationState.SUBMITTING)
            request = GenerationRequest(image_data_url=image_data_url, prompt=prompt, style=style)
            token = self._abort.begin()
            try:
                response = await self.client.attempt(request, token)
            except GenerationError as exc:
                error = exc
            except Exception as exc:  # noqa: BLE001
                logger.exception("Generation attempt %d raised unexpectedly", attempt)
                error = GenerationError(str(exc) or GENERIC_FAILURE_MESSAGE)
            else:
                return self._finish_success(response)
            finally:
                self._abort.end(token)

            if error.aborted or self._abort_requested:
                return self._finish_aborted()
            if attempt >= self.config.max_attempts:
                return self._finish_failed(error.message, attempt)

            delay = self.backoff_delay(attempt)
            self.retry_count = attempt
            logger.warning(
                "Attempt %d/%d failed (%s); retrying in %.2fs",
                attempt,
                self.config.max_attempts,
                error.message,
                delay,
            )
            self._transition(GenerationState.RETRYING)
            token = self._abort.begin()
            try:
                if await token.wait(delay):
                    return self._finish_aborted()
            finally:
                self._abort.end(token)

    def _finish_success(self, response: GenerationResponse) -> GenerationResponse:
        self.history_service.record(response)
        self.result = response
        self.error = None
        self.retry_count = 0
        self.notice = SUCCESS_MESSAGE
        logger.info("Generation %s succeeded", response.id)
        self._transition(GenerationState.SUCCEEDED)
        return response

    def _finish_aborted(self) -> None:
        self.result = None
        self.error = CANCELLED_MESSAGE
        logger.info("Generation cancelled")
        self._transition(GenerationState.ABORTED)
        return None

    def _finish_failed(self, message: str, attempts: int) -> None:
        self.result = None
        self.error = message or GENERIC_FAILURE_MESSAGE
        logger.error("Generation failed after %d attempts: %s", attempts, self.error)
        self._transition(GenerationState.FAILED)
        return None
