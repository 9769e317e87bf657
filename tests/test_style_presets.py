"""Style preset registry tests."""

from __future__ import annotations

import json

import pytest

from studio.styles.style_presets import StylePreset, StylePresetRegistry, default_registry


def test_default_registry_vocabulary():
    registry = default_registry()

    assert registry.ids() == ["editorial", "streetwear", "vintage", "minimalist", "futuristic"]
    assert registry.get("vintage").name == "Vintage"
    assert "editorial" in registry


def test_get_unknown_preset_raises():
    with pytest.raises(KeyError, match="baroque"):
        StylePresetRegistry().get("baroque")


def test_load_from_file_extends_and_overrides(tmp_path):
    path = tmp_path / "styles.json"
    path.write_text(
        json.dumps(
            [
                {"id": "cinematic", "name": "Cinematic", "description": "Dramatic, movie-like quality"},
                {"id": "editorial", "name": "Editorial", "description": "Clean, magazine-style aesthetic"},
            ]
        ),
        encoding="utf-8",
    )

    registry = default_registry(path)

    assert registry.ids()[-1] == "cinematic"
    assert registry.get("editorial").description == "Clean, magazine-style aesthetic"
    assert len(registry.list_presets()) == 6


def test_load_from_missing_file_is_ignored(tmp_path):
    registry = StylePresetRegistry([StylePreset("only", "Only")])

    registry.load_from_file(tmp_path / "absent.json")

    assert registry.ids() == ["only"]
