"""Configuration loading tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from config.settings import AppConfig, load_config

_ENV_NAMES = (
    "STUDIO_STORAGE_PATH",
    "STUDIO_FAILURE_RATE",
    "STUDIO_MIN_LATENCY_MS",
    "STUDIO_MAX_LATENCY_MS",
    "STUDIO_BACKOFF_BASE_MS",
    "STUDIO_MAX_ATTEMPTS",
    "STUDIO_HISTORY_LIMIT",
    "STUDIO_STYLES_FILE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    yield


def test_defaults_match_lifecycle_constants(tmp_path):
    config = load_config(str(tmp_path / "missing.env"))

    assert config.history_limit == 5
    assert config.max_upload_bytes == 10 * 1024 * 1024
    assert config.max_image_width == 1920
    assert config.min_latency_s == pytest.approx(1.0)
    assert config.max_latency_s == pytest.approx(2.0)
    assert config.failure_rate == pytest.approx(0.2)
    assert config.max_attempts == 3
    assert config.backoff_base_s == pytest.approx(0.5)
    assert config.storage_path == AppConfig().storage_path


def test_env_file_overrides(monkeypatch, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# local overrides\n"
        "STUDIO_STORAGE_PATH=/tmp/studio.json\n"
        "STUDIO_FAILURE_RATE=0\n"
        "STUDIO_MIN_LATENCY_MS=10\n"
        "STUDIO_MAX_LATENCY_MS=20\n"
        "STUDIO_STYLES_FILE=styles.json\n",
        encoding="utf-8",
    )
    for name in _ENV_NAMES:
        monkeypatch.setenv(name, "")

    config = load_config(str(env_file))

    assert config.storage_path == Path("/tmp/studio.json")
    assert config.failure_rate == 0.0
    assert config.min_latency_s == pytest.approx(0.01)
    assert config.max_latency_s == pytest.approx(0.02)
    assert config.metadata["styles_file"] == "styles.json"


@pytest.mark.parametrize(
    "name, value",
    [
        ("STUDIO_FAILURE_RATE", "often"),
        ("STUDIO_FAILURE_RATE", "1.5"),
        ("STUDIO_MAX_ATTEMPTS", "three"),
    ],
)
def test_invalid_values_raise(monkeypatch, tmp_path, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(ValueError):
        load_config(str(tmp_path / "missing.env"))


def test_latency_range_must_be_ordered(monkeypatch, tmp_path):
    monkeypatch.setenv("STUDIO_MIN_LATENCY_MS", "500")
    monkeypatch.setenv("STUDIO_MAX_LATENCY_MS", "100")

    with pytest.raises(ValueError):
        load_config(str(tmp_path / "missing.env"))
