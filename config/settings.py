"""Configuration helpers for the AI Studio project."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional


@dataclass(slots=True)
class AppConfig:
    """Centralized application configuration."""

    assets_dir: Path = Path("assets")
    log_dir: Path = Path("logs")
    storage_path: Path = Path("data/storage.json")
    history_key: str = "ai-studio:history"
    history_limit: int = 5
    max_upload_bytes: int = 10 * 1024 * 1024
    max_image_width: int = 1920
    min_latency_s: float = 1.0
    max_latency_s: float = 2.0
    failure_rate: float = 0.2
    max_attempts: int = 3
    backoff_base_s: float = 0.5
    default_style: str = "editorial"
    metadata: dict[str, Any] = field(default_factory=dict)


def _load_env_file(path: Path) -> None:
    """Populate environment variables from a simple KEY=VALUE .env file."""
    if not path.exists():
        return

    for line in path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        os.environ[key.strip()] = value.strip()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Return an AppConfig instance with environment-aware settings."""
    env_path = Path(config_path) if config_path else Path(".env")
    _load_env_file(env_path)

    defaults = AppConfig()
    min_latency_s = _env_float("STUDIO_MIN_LATENCY_MS", defaults.min_latency_s * 1000) / 1000
    max_latency_s = _env_float("STUDIO_MAX_LATENCY_MS", defaults.max_latency_s * 1000) / 1000
    if max_latency_s < min_latency_s:
        raise ValueError("STUDIO_MAX_LATENCY_MS must not be lower than STUDIO_MIN_LATENCY_MS")

    failure_rate = _env_float("STUDIO_FAILURE_RATE", defaults.failure_rate)
    if not 0.0 <= failure_rate <= 1.0:
        raise ValueError("STUDIO_FAILURE_RATE must be between 0 and 1")

    metadata: dict[str, Any] = {}
    styles_file = os.getenv("STUDIO_STYLES_FILE")
    if styles_file:
        metadata["styles_file"] = styles_file

    return AppConfig(
        assets_dir=Path(os.getenv("STUDIO_ASSETS_DIR", str(defaults.assets_dir))).expanduser(),
        log_dir=Path(os.getenv("STUDIO_LOG_DIR", str(defaults.log_dir))).expanduser(),
        storage_path=Path(os.getenv("STUDIO_STORAGE_PATH", str(defaults.storage_path))).expanduser(),
        history_key=os.getenv("STUDIO_HISTORY_KEY", defaults.history_key),
        history_limit=_env_int("STUDIO_HISTORY_LIMIT", defaults.history_limit),
        max_upload_bytes=_env_int("STUDIO_MAX_UPLOAD_BYTES", defaults.max_upload_bytes),
        max_image_width=_env_int("STUDIO_MAX_IMAGE_WIDTH", defaults.max_image_width),
        min_latency_s=min_latency_s,
        max_latency_s=max_latency_s,
        failure_rate=failure_rate,
        max_attempts=_env_int("STUDIO_MAX_ATTEMPTS", defaults.max_attempts),
        backoff_base_s=_env_float("STUDIO_BACKOFF_BASE_MS", defaults.backoff_base_s * 1000) / 1000,
        default_style=os.getenv("STUDIO_DEFAULT_STYLE", defaults.default_style),
        metadata=metadata,
    )
