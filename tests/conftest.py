"""Shared fixtures and stub collaborators."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

import pytest
from PIL import Image

from modules.services.veo_client import JobHandle, JobStatus, VideoArtifact


class DummyVeoClient:
    """Stub remote job client replaying scripted poll results."""

    def __init__(
        self,
        statuses: Optional[list] = None,
        artifact: Optional[VideoArtifact] = None,
        submit_error: Optional[Exception] = None,
        fetch_error: Optional[Exception] = None,
        model: str = "veo-3.1-fast-generate-preview",
    ) -> None:
        self.model = model
        self.statuses = list(statuses or [JobStatus(done=True, result_locator="https://example.test/video")])
        self.artifact = artifact or VideoArtifact(data=b"\x00\x00\x00\x18ftypmp42", mime_type="video/mp4")
        self.submit_error = submit_error
        self.fetch_error = fetch_error
        self.submitted: list[tuple[bytes, str, str]] = []
        self.polled = 0
        self.fetched: list[str] = []
        self.api_key: Optional[str] = None

    def submit(self, image_bytes: bytes, mime_type: str, aspect_hint: str) -> JobHandle:
        self.submitted.append((image_bytes, mime_type, aspect_hint))
        if self.submit_error is not None:
            raise self.submit_error
        return JobHandle(name="models/veo/operations/test-op")

    def poll(self, handle: JobHandle) -> JobStatus:
        self.polled += 1
        item = self.statuses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def fetch_artifact(self, locator: str) -> VideoArtifact:
        self.fetched.append(locator)
        if self.fetch_error is not None:
            raise self.fetch_error
        return self.artifact

    def set_api_key(self, api_key: str) -> None:
        self.api_key = api_key


class FakeClock:
    """Monotonic clock advanced only by sleep()."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_image(tmp_path: Path) -> Callable[..., Path]:
    """Write a small PNG with the given size and return its path."""

    def _make(width: int = 64, height: int = 32, name: str = "input.png") -> Path:
        path = tmp_path / name
        Image.new("RGB", (width, height), color=(200, 80, 40)).save(path, format="PNG")
        return path

    return _make


@pytest.fixture
def make_client() -> Callable[..., DummyVeoClient]:
    return DummyVeoClient
