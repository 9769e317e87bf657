"""Callback implementations for the Gradio interface."""

from __future__ import annotations

import logging
from typing import Any, Optional

from studio.services.generation_service import GenerationController, GenerationState
from studio.utils.image_utils import (
    ImageProcessingError,
    ImageValidationError,
    UploadedImage,
    data_url_to_image,
    generate_thumbnail,
)

logger = logging.getLogger(__name__)


def build_callbacks(controller: GenerationController) -> dict[str, Any]:
    """Return a dictionary of Gradio callback functions bound to ``controller``."""

    def _to_image(data_url: Optional[str]) -> Optional[Any]:
        if not data_url:
            return None
        try:
            return data_url_to_image(data_url)
        except (ValueError, ImageProcessingError) as exc:
            logger.warning("Cannot render image: %s", exc)
            return None

    def _history_gallery() -> list[tuple[Any, str]]:
        items: list[tuple[Any, str]] = []
        for entry in controller.history:
            image = _to_image(entry.image_url)
            if image is None:
                continue
            items.append((generate_thumbnail(image), f"{entry.style}: {entry.prompt}"))
        return items

    def _describe_outcome() -> str:
        if controller.state is GenerationState.SUCCEEDED:
            return controller.notice or "Generation completed successfully!"
        if controller.state is GenerationState.ABORTED:
            return controller.error or "Generation cancelled"
        if controller.state is GenerationState.FAILED:
            suffix = f" (after {controller.retry_count} retries)" if controller.retry_count else ""
            return f"Generation failed: {controller.error}{suffix}"
        return controller.error or "Ready."

    def on_style_change(style_id: str) -> str:
        try:
            return controller.style_registry.get(style_id).description
        except KeyError:
            return ""

    async def on_upload(path: Optional[str]) -> tuple[Optional[Any], str]:
        if not path:
            controller.clear_image()
            return None, "Image removed."
        try:
            upload = UploadedImage.from_path(path)
        except OSError as exc:
            return None, f"Upload failed: {exc}"
        try:
            data_url = await controller.load_image(upload)
        except (ImageValidationError, ImageProcessingError) as exc:
            return None, str(exc)
        return _to_image(data_url), "Image ready."

    async def on_generate(prompt: str, style_id: str) -> tuple[Optional[Any], str, list[tuple[Any, str]]]:
        if controller.is_busy:
            return None, "A generation is already running.", _history_gallery()
        controller.set_prompt(prompt)
        try:
            controller.set_style(style_id)
        except KeyError as exc:
            return None, f"Generation failed: {exc}", _history_gallery()

        response = await controller.generate()
        image = _to_image(response.image_url) if response is not None else None
        return image, _describe_outcome(), _history_gallery()

    async def on_abort() -> str:
        if controller.abort():
            return "Cancelling..."
        return "Nothing to cancel."

    def on_restore(index: Optional[int]) -> tuple[Optional[Any], str, str, Optional[Any], str]:
        entries = controller.history
        if index is None or not 0 <= index < len(entries):
            return None, controller.prompt, controller.style, None, "History entry not found."
        form = controller.restore_from_history(entries[index].id)
        image = _to_image(form.image_data_url)
        return image, form.prompt, form.style, image, "Restored from history."

    def on_load_history() -> list[tuple[Any, str]]:
        return _history_gallery()

    return {
        "on_style_change": on_style_change,
        "on_upload": on_upload,
        "on_generate": on_generate,
        "on_abort": on_abort,
        "on_restore": on_restore,
        "on_load_history": on_load_history,
    }
