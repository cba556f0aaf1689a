"""Callback implementations for the Gradio interface."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from config.settings import AppConfig
from modules.pipelines.img2video import AnimationResult, Image2VideoService
from modules.services.errors import AnimationError, CredentialResetSignal, ImageReadError
from modules.services.history_service import HistoryEntry, HistoryStore
from modules.services.storage_service import StorageService
from modules.utils.image_utils import (
    decode_base64,
    encode_base64,
    generate_thumbnail,
    load_image_payload,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL_LABELS = {"veo-3.1-fast-generate-preview": "Veo Fast"}

INVALID_KEY_MESSAGE = (
    "Your API key appears to be invalid. Please select a valid project API key to continue."
)
EXPORT_FAILED_MESSAGE = "The video was generated but could not be saved for playback. Check the output folder."


def build_callbacks(
    config: AppConfig,
    animator: Optional[Image2VideoService] = None,
    history: Optional[HistoryStore] = None,
    storage: Optional[StorageService] = None,
) -> dict[str, Any]:
    """Return a dictionary of Gradio callback functions."""

    exporter = storage or StorageService(config.output_dir)
    model_labels: Dict[str, str] = dict(DEFAULT_MODEL_LABELS)
    extra_labels = config.metadata.get("model_labels", {})
    if isinstance(extra_labels, dict):
        model_labels.update({str(key): str(value) for key, value in extra_labels.items()})

    def _ensure_animator() -> Image2VideoService:
        if animator is None:
            raise RuntimeError("Video generation service is not configured.")
        return animator

    def _model_label(model: str) -> str:
        return model_labels.get(model, model)

    def _describe(duration_ms: int, model: str) -> str:
        return f"~{duration_ms / 1000:.1f}s, {_model_label(model)}"

    def _progress_sink(progress: Optional[Callable[..., Any]]) -> Callable[[int], None]:
        def _report(percent: int) -> None:
            if progress is None:
                return
            progress(percent / 100, desc=f"Creating your animation... {percent}%")

        return _report

    def _record_history(image_path: Any, result: AnimationResult) -> Optional[HistoryEntry]:
        if history is None:
            return None
        try:
            source_image = load_image_payload(image_path).to_base64()
        except ImageReadError as exc:
            logger.warning("Skipping history entry, source image unreadable: %s", exc)
            return None
        entry = HistoryEntry(
            id=history.next_entry_id(),
            source_image=source_image,
            result_artifact=encode_base64(result.artifact.data),
            artifact_mime_type=result.artifact.mime_type,
            generation_duration_ms=result.duration_ms,
            model_identifier=result.model_identifier,
        )
        history.insert(entry)
        return entry

    def _export(data: bytes, mime_type: str, name: str) -> Optional[str]:
        try:
            video_path = exporter.save_video(data, mime_type, name)
            exporter.cleanup(config.max_exported_videos)
        except OSError as exc:
            logger.error("Failed to export video %s: %s", name, exc)
            return None
        return str(video_path)

    def on_animate(image_path: Any, progress: Optional[Callable[..., Any]] = None) -> tuple[Optional[str], str, bool]:
        if image_path is None:
            return None, "Animation failed: please upload an image first.", False

        service = _ensure_animator()
        try:
            result = service.animate(image_path, _progress_sink(progress))
        except CredentialResetSignal:
            return None, INVALID_KEY_MESSAGE, True
        except AnimationError as exc:
            return None, f"Animation failed: {exc.message}", False

        entry = _record_history(image_path, result)
        name = entry.id if entry is not None else f"animation-{result.duration_ms}"
        video_path = _export(result.artifact.data, result.artifact.mime_type, name)
        if video_path is None:
            return None, EXPORT_FAILED_MESSAGE, False
        return (
            video_path,
            f"Animation complete ({_describe(result.duration_ms, result.model_identifier)})",
            False,
        )

    def on_set_api_key(api_key: str) -> tuple[str, bool]:
        service = _ensure_animator()
        key = (api_key or "").strip()
        if not key:
            return "Please enter an API key.", True
        setter = getattr(service.client, "set_api_key", None)
        if setter is None:
            return "This generation backend does not accept API keys.", True
        setter(key)
        return "API key updated. You can animate images now.", False

    def on_list_history() -> list[tuple[Any, str]]:
        if history is None:
            return []
        items: list[tuple[Any, str]] = []
        for entry in history.entries:
            try:
                thumbnail = generate_thumbnail(entry.source_image)
            except ImageReadError as exc:
                logger.warning("History thumbnail for %s unavailable: %s", entry.id, exc)
                continue
            items.append((thumbnail, _describe(entry.generation_duration_ms, entry.model_identifier)))
        return items

    def on_select_history(index: Optional[int]) -> tuple[Optional[str], str]:
        if history is None or index is None:
            return None, "No history entry selected."
        entries = history.entries
        if not 0 <= index < len(entries):
            return None, "History entry not found."
        entry = entries[index]
        try:
            data = decode_base64(entry.result_artifact)
        except ImageReadError:
            return None, "This history entry is damaged and cannot be played."
        video_path = _export(data, entry.artifact_mime_type, entry.id)
        if video_path is None:
            return None, EXPORT_FAILED_MESSAGE
        return video_path, f"History playback ({_describe(entry.generation_duration_ms, entry.model_identifier)})"

    def on_clear_history() -> tuple[list[tuple[Any, str]], str]:
        if history is not None:
            history.clear()
        return [], "History cleared."

    return {
        "on_animate": on_animate,
        "on_set_api_key": on_set_api_key,
        "on_list_history": on_list_history,
        "on_select_history": on_select_history,
        "on_clear_history": on_clear_history,
    }

