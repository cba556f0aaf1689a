"""Gradio layout composition for the video animator."""

from __future__ import annotations

from typing import Any

import gradio as gr

from config.settings import AppConfig
from modules.pipelines.img2video import Image2VideoService
from modules.services.history_service import HistoryStore
from modules.services.storage_service import FileStorageBackend, StorageService
from modules.ui.callbacks import build_callbacks


def _build_history(config: AppConfig) -> HistoryStore:
    backend = FileStorageBackend(config.history_dir, quota_bytes=config.history_quota_bytes)
    store = HistoryStore(backend, key=config.history_key, capacity=config.history_limit)
    store.load()
    return store


def build_app(config: AppConfig) -> Any:
    """Compose and return the Gradio application."""
    animator = Image2VideoService(config)
    history = _build_history(config)
    callbacks_map = build_callbacks(
        config,
        animator=animator,
        history=history,
        storage=StorageService(config.output_dir),
    )
    needs_key = not config.api_key

    def _animate(image_path: Any, progress: Any = gr.Progress()) -> tuple[Any, str, Any]:
        video_path, message, reset_key = callbacks_map["on_animate"](image_path, progress)
        return video_path, message, gr.update(visible=reset_key)

    def _set_key(api_key: str) -> tuple[str, Any]:
        message, still_needed = callbacks_map["on_set_api_key"](api_key)
        return message, gr.update(visible=still_needed)

    def _select_history(evt: gr.SelectData) -> tuple[Any, str]:
        return callbacks_map["on_select_history"](evt.index)

    with gr.Blocks(title="AI Video Animator") as demo:
        gr.Markdown("## AI Video Animator\nBring your static photos to life with a single click.")

        with gr.Group(visible=needs_key) as key_panel:
            gr.Markdown(
                "To get started, please provide a Google AI Studio API key. "
                "Ensure your project has billing enabled."
            )
            api_key = gr.Textbox(label="API Key", type="password")
            key_btn = gr.Button("Use API Key")
            key_status = gr.Markdown("")

        with gr.Row():
            with gr.Column():
                source_image = gr.Image(label="Source image", type="filepath")
                animate_btn = gr.Button("Animate", variant="primary")
            with gr.Column():
                output_video = gr.Video(label="Animation", autoplay=True, loop=True)
                status = gr.Markdown("Ready.")

        with gr.Row():
            gr.Markdown("### Animation History")
            clear_btn = gr.Button("Clear History", size="sm")
        gallery = gr.Gallery(
            label="History",
            value=callbacks_map["on_list_history"](),
            columns=5,
            allow_preview=False,
        )

        animate_btn.click(
            fn=_animate,
            inputs=[source_image],
            outputs=[output_video, status, key_panel],
        ).then(
            fn=callbacks_map["on_list_history"],
            inputs=None,
            outputs=[gallery],
        )

        key_btn.click(fn=_set_key, inputs=[api_key], outputs=[key_status, key_panel])
        gallery.select(fn=_select_history, inputs=None, outputs=[output_video, status])
        clear_btn.click(fn=callbacks_map["on_clear_history"], inputs=None, outputs=[gallery, status])

    return demo
