"""Configuration helpers for the AI Video Animator project."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

DEFAULT_API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_VIDEO_MODEL = "veo-3.1-fast-generate-preview"
DEFAULT_ANIMATION_PROMPT = "Animate this image with subtle, cinematic motion, bringing it to life."


@dataclass(slots=True)
class AppConfig:
    """Centralized application configuration."""

    api_key: Optional[str] = None
    api_base_url: str = DEFAULT_API_BASE_URL
    video_model: str = DEFAULT_VIDEO_MODEL
    animation_prompt: str = DEFAULT_ANIMATION_PROMPT
    resolution: str = "720p"
    poll_interval_seconds: float = 10.0
    expected_duration_ms: int = 120_000
    request_timeout: float = 60.0
    history_dir: Path = Path("data/history")
    history_key: str = "ai-video-animator-history"
    history_limit: int = 5
    history_quota_bytes: Optional[int] = 5 * 1024 * 1024
    output_dir: Path = Path("outputs")
    max_exported_videos: int = 20
    log_dir: Path = Path("logs")
    passthrough_error_categories: tuple[str, ...] = ("credential_reset",)
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
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_categories(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name)
    if not raw:
        return default
    return tuple(item.strip().lower() for item in raw.split(",") if item.strip())


def _env_labels(name: str) -> dict[str, str]:
    """Parse ``model=Label,other=Other`` pairs; malformed pairs are skipped."""
    labels: dict[str, str] = {}
    for item in (os.getenv(name) or "").split(","):
        model, sep, label = item.partition("=")
        if sep and model.strip() and label.strip():
            labels[model.strip()] = label.strip()
    return labels


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Return an AppConfig instance with environment-aware settings."""
    env_path = Path(config_path) if config_path else Path(".env")
    _load_env_file(env_path)

    defaults = AppConfig()

    return AppConfig(
        api_key=os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY"),
        api_base_url=(os.getenv("GEMINI_BASE_URL") or defaults.api_base_url).rstrip("/"),
        video_model=os.getenv("VEO_MODEL") or defaults.video_model,
        animation_prompt=os.getenv("ANIMATION_PROMPT") or defaults.animation_prompt,
        resolution=os.getenv("VIDEO_RESOLUTION") or defaults.resolution,
        poll_interval_seconds=_env_float("POLL_INTERVAL_SECONDS", defaults.poll_interval_seconds),
        expected_duration_ms=_env_int("EXPECTED_DURATION_MS", defaults.expected_duration_ms)
        or defaults.expected_duration_ms,
        request_timeout=_env_float("REQUEST_TIMEOUT", defaults.request_timeout),
        history_dir=Path(os.getenv("HISTORY_DIR") or defaults.history_dir).expanduser(),
        history_quota_bytes=_env_int("HISTORY_QUOTA_BYTES", defaults.history_quota_bytes),
        output_dir=Path(os.getenv("OUTPUT_DIR") or defaults.output_dir).expanduser(),
        log_dir=Path(os.getenv("LOG_DIR") or defaults.log_dir).expanduser(),
        passthrough_error_categories=_env_categories(
            "PASSTHROUGH_ERROR_CATEGORIES", defaults.passthrough_error_categories
        ),
        metadata={"model_labels": _env_labels("MODEL_LABELS")},
    )
