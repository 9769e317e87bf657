"""Durable key-value storage."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional


class StorageError(RuntimeError):
    """Raised when the backing file cannot be read or written."""


class CorruptStorageError(StorageError):
    """Raised when the backing file exists but does not hold a JSON object."""


class StorageService:
    """String key-value store persisted as a single JSON document.

    Each write rewrites the whole document. Concurrent writers in separate
    processes are not coordinated.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def get(self, key: str) -> Optional[str]:
        """Return the stored value or None when the key is absent."""
        return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``."""
        data = self._read_all_for_update()
        data[key] = value
        self._write_all(data)

    def remove(self, key: str) -> None:
        """Delete ``key`` if present."""
        data = self._read_all_for_update()
        if data.pop(key, None) is not None:
            self._write_all(data)

    # Internal helpers ---------------------------------------------------------
    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw = self.path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise CorruptStorageError(f"Storage file {self.path} is not valid UTF-8") from exc
        except OSError as exc:
            raise StorageError(f"Cannot read {self.path}: {exc}") from exc
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise CorruptStorageError(f"Storage file {self.path} is not valid JSON") from exc
        if not isinstance(data, dict):
            raise CorruptStorageError(f"Storage file {self.path} does not hold an object")
        return {str(key): value for key, value in data.items() if isinstance(value, str)}

    def _read_all_for_update(self) -> Dict[str, str]:
        # A corrupt document is replaced rather than blocking every later write.
        try:
            return self._read_all()
        except CorruptStorageError:
            return {}

    def _write_all(self, data: Dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fp:
                    json.dump(data, fp, ensure_ascii=False)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageError(f"Cannot write {self.path}: {exc}") from exc
