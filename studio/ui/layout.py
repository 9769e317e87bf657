"""Gradio layout composition for the image studio."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Sequence

try:
    import gradio as gr
except ImportError:  # pragma: no cover
    gr = None  # type: ignore

from config.settings import AppConfig
from studio.services.generation_service import GenerationController
from studio.styles.style_presets import StylePresetRegistry, default_registry
from studio.ui.callbacks import build_callbacks


def _load_style_registry(config: AppConfig) -> StylePresetRegistry:
    styles_file = config.metadata.get("styles_file")
    styles_path = Path(styles_file) if styles_file else Path(config.assets_dir) / "styles.json"
    return default_registry(styles_path)


def _style_choices(registry: StylePresetRegistry) -> Sequence[tuple[str, str]]:
    return [(preset.name, preset.id) for preset in registry.list_presets()]


def build_app(config: AppConfig, controller: Optional[GenerationController] = None) -> Any:
    """Compose and return the Gradio application."""
    if gr is None:
        raise RuntimeError("Gradio is not installed; install the project dependencies first.")

    if controller is None:
        controller = GenerationController(config, style_registry=_load_style_registry(config))
    callbacks_map = build_callbacks(controller)

    style_choices = _style_choices(controller.style_registry)
    default_style = controller.style if controller.style in controller.style_registry else style_choices[0][1]

    with gr.Blocks(title="AI Studio") as demo:
        gr.Markdown("## AI Studio")

        with gr.Row():
            with gr.Column():
                source_image = gr.Image(
                    label="Source image (PNG or JPG up to 10MB)",
                    type="filepath",
                    sources=["upload"],
                )
                preview = gr.Image(label="Normalized preview", type="pil", interactive=False)
                prompt = gr.Textbox(
                    label="Prompt",
                    lines=4,
                    placeholder="Enter your creative prompt here...",
                )
                style_select = gr.Dropdown(label="Style", choices=style_choices, value=default_style)
                style_description = gr.Markdown(callbacks_map["on_style_change"](default_style))
                with gr.Row():
                    generate_btn = gr.Button("Generate", variant="primary")
                    abort_btn = gr.Button("Abort", variant="stop")

            with gr.Column():
                output_image = gr.Image(label="Result", type="pil", interactive=False)
                status = gr.Markdown("Ready.")
                history = gr.Gallery(label="History", columns=5, height="auto")

        source_image.upload(
            fn=callbacks_map["on_upload"],
            inputs=[source_image],
            outputs=[preview, status],
        )
        source_image.clear(
            fn=callbacks_map["on_upload"],
            inputs=[source_image],
            outputs=[preview, status],
        )
        style_select.change(
            fn=callbacks_map["on_style_change"],
            inputs=[style_select],
            outputs=[style_description],
        )
        generate_btn.click(
            fn=callbacks_map["on_generate"],
            inputs=[prompt, style_select],
            outputs=[output_image, status, history],
        )
        abort_btn.click(fn=callbacks_map["on_abort"], inputs=None, outputs=[status])

        def _on_history_select(evt: gr.SelectData):
            return callbacks_map["on_restore"](evt.index)

        history.select(
            fn=_on_history_select,
            inputs=None,
            outputs=[preview, prompt, style_select, output_image, status],
        )
        demo.load(fn=callbacks_map["on_load_history"], inputs=None, outputs=[history])

    return demo
