"""Google Veo long-running operation client."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests

from config.settings import AppConfig
from modules.services.errors import DownloadFailed, RemoteServiceError
from modules.utils.image_utils import encode_base64

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class JobHandle:
    """Opaque reference to a remote operation."""

    name: str


@dataclass(slots=True)
class JobStatus:
    """Snapshot of a remote operation."""

    done: bool
    result_locator: Optional[str] = None
    model_identifier: Optional[str] = None


@dataclass(slots=True)
class VideoArtifact:
    """Downloaded video bytes."""

    data: bytes
    mime_type: str = "video/mp4"


def _extract_locator(response: dict[str, Any]) -> Optional[str]:
    """Find the first video URI in either the REST or the SDK response shape."""
    generated = response.get("generateVideoResponse") or response
    samples = generated.get("generatedSamples") or generated.get("generatedVideos") or []
    for sample in samples:
        if not isinstance(sample, dict):
            continue
        video = sample.get("video") or {}
        uri = video.get("uri") if isinstance(video, dict) else None
        if uri:
            return str(uri)
    return None


class VeoClient:
    """Submit image-to-video jobs and track them over the Gemini REST API."""

    def __init__(self, config: AppConfig, session: Optional[requests.Session] = None) -> None:
        self.config = config
        self.api_key = config.api_key
        self.model = config.video_model
        self._session = session or requests.Session()

    def set_api_key(self, api_key: str) -> None:
        """Replace the credential used for subsequent requests."""
        if not api_key:
            raise ValueError("API key must not be empty")
        self.api_key = api_key

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            raise RemoteServiceError(None, "API key not valid. Please pass a valid API key.")
        return {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}

    def _check(self, response: requests.Response) -> dict[str, Any]:
        if not response.ok:
            raise RemoteServiceError(response.status_code, response.text)
        return response.json()

    def submit(self, image_bytes: bytes, mime_type: str, aspect_hint: str) -> JobHandle:
        """Start a generation and return the operation handle."""
        body = {
            "instances": [
                {
                    "prompt": self.config.animation_prompt,
                    "image": {
                        "bytesBase64Encoded": encode_base64(image_bytes),
                        "mimeType": mime_type,
                    },
                }
            ],
            "parameters": {
                "aspectRatio": aspect_hint,
                "resolution": self.config.resolution,
                "sampleCount": 1,
            },
        }
        url = f"{self.config.api_base_url}/models/{self.model}:predictLongRunning"
        response = self._session.post(
            url, headers=self._headers(), json=body, timeout=self.config.request_timeout
        )
        payload = self._check(response)
        name = payload.get("name")
        if not name:
            raise RemoteServiceError(response.status_code, json.dumps(payload))
        logger.info("Submitted Veo operation %s (aspect %s)", name, aspect_hint)
        return JobHandle(name=str(name))

    def poll(self, handle: JobHandle) -> JobStatus:
        """Fetch the current state of an operation."""
        url = f"{self.config.api_base_url}/{handle.name}"
        response = self._session.get(url, headers=self._headers(), timeout=self.config.request_timeout)
        payload = self._check(response)

        if payload.get("error"):
            raise RemoteServiceError(response.status_code, json.dumps({"error": payload["error"]}))
        if not payload.get("done"):
            return JobStatus(done=False)

        result = payload.get("response") or {}
        model = result.get("model") or (payload.get("metadata") or {}).get("model")
        return JobStatus(
            done=True,
            result_locator=_extract_locator(result),
            model_identifier=str(model) if model else None,
        )

    def fetch_artifact(self, locator: str) -> VideoArtifact:
        """Download the finished video; the API key travels as a ``key`` query parameter."""
        response = self._session.get(
            locator,
            params={"key": self.api_key},
            timeout=self.config.request_timeout,
        )
        if not response.ok:
            raise DownloadFailed(response.status_code, response.text)
        mime_type = response.headers.get("Content-Type", "video/mp4").split(";")[0].strip()
        return VideoArtifact(data=response.content, mime_type=mime_type or "video/mp4")
