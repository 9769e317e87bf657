"""Simulated remote generation backend."""

from __future__ import annotations

import logging
import random
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from config.settings import AppConfig
from studio.services.cancellation import CancellationToken

logger = logging.getLogger(__name__)

MODEL_OVERLOADED = "Model overloaded"
REQUEST_ABORTED = "Request aborted"


@dataclass(frozen=True, slots=True)
class GenerationRequest:
    """Payload for a single generation attempt."""

    image_data_url: str
    prompt: str
    style: str


@dataclass(frozen=True, slots=True)
class GenerationResponse:
    """A completed generation, also used as the persisted history record."""

    id: str
    image_url: str
    prompt: str
    style: str
    created_at: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "imageUrl": self.image_url,
            "prompt": self.prompt,
            "style": self.style,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GenerationResponse":
        """Build a response from its persisted layout.

        Raises ``ValueError`` when a field is missing or not a string.
        """
        values = {}
        for attr, key in (
            ("id", "id"),
            ("image_url", "imageUrl"),
            ("prompt", "prompt"),
            ("style", "style"),
            ("created_at", "createdAt"),
        ):
            value = data.get(key)
            if not isinstance(value, str):
                raise ValueError(f"History record field '{key}' is missing or invalid")
            values[attr] = value
        return cls(**values)


class GenerationError(Exception):
    """Rejection from the generation backend."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def aborted(self) -> bool:
        return self.message == REQUEST_ABORTED


def _timestamp() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class SimulatedGenerationClient:
    """Stand-in for the remote image transformation service.

    Every attempt waits a random latency and then either echoes the input
    image back as the result or fails with "Model overloaded".
    """

    def __init__(self, config: AppConfig, rng: Optional[random.Random] = None) -> None:
        self.config = config
        self._rng = rng or random.Random()

    async def attempt(self, request: GenerationRequest, token: CancellationToken) -> GenerationResponse:
        """Run one attempt, rejecting with "Request aborted" if ``token`` fires."""
        delay = self._rng.uniform(self.config.min_latency_s, self.config.max_latency_s)
        if await token.wait(delay):
            raise GenerationError(REQUEST_ABORTED)

        if self._rng.random() < self.config.failure_rate:
            logger.debug("Simulated backend overloaded after %.2fs", delay)
            raise GenerationError(MODEL_OVERLOADED)

        return GenerationResponse(
            id=uuid.uuid4().hex,
            image_url=request.image_data_url,
            prompt=request.prompt,
            style=request.style,
            created_at=_timestamp(),
        )
