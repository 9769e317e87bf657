"""Style preset management."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional


@dataclass(slots=True)
class StylePreset:
    """A selectable style shown in the style picker."""

    id: str
    name: str
    description: str = ""


DEFAULT_PRESETS = (
    StylePreset("editorial", "Editorial", "Clean, professional look suitable for publications"),
    StylePreset("streetwear", "Streetwear", "Urban, casual style with bold elements"),
    StylePreset("vintage", "Vintage", "Classic, retro aesthetic with nostalgic elements"),
    StylePreset("minimalist", "Minimalist", "Simple, clean design with essential elements only"),
    StylePreset("futuristic", "Futuristic", "Forward-looking style with innovative elements"),
)


class StylePresetRegistry:
    """In-memory registry of style presets, kept in insertion order."""

    def __init__(self, presets: Optional[Iterable[StylePreset]] = None) -> None:
        self._presets: Dict[str, StylePreset] = {}
        for preset in presets or ():
            self.add(preset)

    def load_from_file(self, path: Path) -> None:
        """Load presets from a JSON file."""
        if not path.exists():
            return
        with path.open("r", encoding="utf-8") as fp:
            data = json.load(fp)
        for entry in data:
            preset = StylePreset(
                id=entry["id"],
                name=entry.get("name", entry["id"]),
                description=entry.get("description", ""),
            )
            self.add(preset)

    def add(self, preset: StylePreset) -> None:
        """Register a new style preset."""
        self._presets[preset.id] = preset

    def list_presets(self) -> List[StylePreset]:
        """Return all registered presets."""
        return list(self._presets.values())

    def ids(self) -> List[str]:
        return list(self._presets.keys())

    def __contains__(self, style_id: object) -> bool:
        return style_id in self._presets

    def get(self, style_id: str) -> StylePreset:
        """Retrieve a preset by id."""
        try:
            return self._presets[style_id]
        except KeyError as exc:
            raise KeyError(f"Style preset '{style_id}' not found") from exc


def default_registry(styles_file: Optional[Path] = None) -> StylePresetRegistry:
    """Return the built-in presets, extended by ``styles_file`` when given."""
    registry = StylePresetRegistry(DEFAULT_PRESETS)
    if styles_file is not None:
        registry.load_from_file(styles_file)
    return registry
