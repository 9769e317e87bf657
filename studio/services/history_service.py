"""Generation history tracking."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import List, Optional

from studio.services.generation_client import GenerationResponse
from studio.services.storage_service import StorageError, StorageService

logger = logging.getLogger(__name__)

HISTORY_KEY = "ai-studio:history"
HISTORY_LIMIT = 5

HistoryEntry = GenerationResponse


@dataclass(frozen=True, slots=True)
class FormState:
    """Form fields needed to resubmit a past generation."""

    image_data_url: str
    prompt: str
    style: str


class GenerationHistoryService:
    """Bounded, newest-first history persisted under a single storage key."""

    def __init__(self, store: StorageService, key: str = HISTORY_KEY, limit: int = HISTORY_LIMIT) -> None:
        if limit < 1:
            raise ValueError("History limit must be at least 1")
        self.store = store
        self.key = key
        self.limit = limit
        self._entries: List[HistoryEntry] = self._hydrate()

    def __len__(self) -> int:
        return len(self._entries)

    def record(self, entry: HistoryEntry) -> None:
        """Prepend an entry, evict the oldest beyond the limit and persist."""
        self._entries = [entry, *self._entries][: self.limit]
        self._persist()

    def list(self, limit: Optional[int] = None) -> List[HistoryEntry]:
        """Return the most recent records, newest first."""
        entries = list(self._entries)
        return entries if limit is None else entries[:limit]

    def get(self, entry_id: str) -> HistoryEntry:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        raise KeyError(f"History entry '{entry_id}' not found")

    def restore(self, entry: HistoryEntry) -> FormState:
        return FormState(image_data_url=entry.image_url, prompt=entry.prompt, style=entry.style)

    def clear(self) -> None:
        self._entries = []
        try:
            self.store.remove(self.key)
        except StorageError as exc:
            logger.warning("Failed to clear persisted history: %s", exc)

    # Internal helpers ---------------------------------------------------------
    def _hydrate(self) -> List[HistoryEntry]:
        try:
            raw = self.store.get(self.key)
        except StorageError as exc:
            logger.warning("History storage unreadable, starting empty: %s", exc)
            return []
        if not raw:
            return []

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Persisted history is not valid JSON, starting empty")
            return []
        if not isinstance(payload, list):
            logger.warning("Persisted history is not a list, starting empty")
            return []

        entries: List[HistoryEntry] = []
        for item in payload:
            if not isinstance(item, dict):
                logger.warning("Skipping malformed history record: %r", item)
                continue
            try:
                entries.append(GenerationResponse.from_dict(item))
            except ValueError as exc:
                logger.warning("Skipping malformed history record: %s", exc)
        return entries[: self.limit]

    def _persist(self) -> None:
        payload = json.dumps([entry.to_dict() for entry in self._entries])
        try:
            self.store.set(self.key, payload)
        except StorageError as exc:
            logger.warning("Failed to persist history, keeping it in memory only: %s", exc)
