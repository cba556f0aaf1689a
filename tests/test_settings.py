"""Configuration loading tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from config.settings import AppConfig, load_config

ENV_NAMES = (
    "GEMINI_API_KEY",
    "API_KEY",
    "GEMINI_BASE_URL",
    "VEO_MODEL",
    "POLL_INTERVAL_SECONDS",
    "EXPECTED_DURATION_MS",
    "HISTORY_DIR",
    "HISTORY_QUOTA_BYTES",
    "PASSTHROUGH_ERROR_CATEGORIES",
    "MODEL_LABELS",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """清空相关环境变量，测试结束后由 monkeypatch 恢复。"""
    for name in ENV_NAMES:
        monkeypatch.setenv(name, "")
    yield


def test_defaults_without_env_file(tmp_path):
    config = load_config(str(tmp_path / "missing.env"))
    defaults = AppConfig()

    assert config.api_key is None
    assert config.video_model == defaults.video_model
    assert config.poll_interval_seconds == 10.0
    assert config.expected_duration_ms == 120_000
    assert config.history_dir == defaults.history_dir
    assert config.passthrough_error_categories == ("credential_reset",)


def test_env_file_overrides(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "\n".join(
            [
                "# local settings",
                "GEMINI_API_KEY=abc123",
                "GEMINI_BASE_URL=https://proxy.example/v1beta/",
                "POLL_INTERVAL_SECONDS=2.5",
                "HISTORY_DIR=/tmp/animator-history",
                "HISTORY_QUOTA_BYTES=2048",
                "PASSTHROUGH_ERROR_CATEGORIES=credential_reset, Quota",
            ]
        ),
        encoding="utf-8",
    )

    config = load_config(str(env_file))

    assert config.api_key == "abc123"
    assert config.api_base_url == "https://proxy.example/v1beta"
    assert config.poll_interval_seconds == 2.5
    assert config.history_dir == Path("/tmp/animator-history")
    assert config.history_quota_bytes == 2048
    assert config.passthrough_error_categories == ("credential_reset", "quota")


def test_malformed_numbers_fall_back(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("POLL_INTERVAL_SECONDS=soon\nEXPECTED_DURATION_MS=long\n", encoding="utf-8")

    config = load_config(str(env_file))

    assert config.poll_interval_seconds == 10.0
    assert config.expected_duration_ms == 120_000


def test_api_key_alias(tmp_path, monkeypatch):
    monkeypatch.setenv("API_KEY", "legacy-key")

    assert load_config(str(tmp_path / "none.env")).api_key == "legacy-key"


def test_model_labels_from_env(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("MODEL_LABELS=veo-3.1-generate-preview=Veo Quality, broken, =x\n", encoding="utf-8")

    config = load_config(str(env_file))

    assert config.metadata["model_labels"] == {"veo-3.1-generate-preview": "Veo Quality"}
