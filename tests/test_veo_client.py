"""VeoClient tests against a fake HTTP session."""

from __future__ import annotations

import base64
import json
from typing import Any, Optional

import pytest

from config.settings import AppConfig
from modules.services.errors import AuthError, DownloadFailed, RemoteServiceError, classify
from modules.services.veo_client import JobHandle, VeoClient


class FakeResponse:
    def __init__(
        self,
        status_code: int = 200,
        payload: Optional[dict[str, Any]] = None,
        text: str = "",
        content: bytes = b"",
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text or (json.dumps(payload) if payload is not None else "")
        self.content = content
        self.headers = headers or {}

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> dict[str, Any]:
        return self._payload or {}


class FakeSession:
    def __init__(self, *responses: FakeResponse) -> None:
        self.responses = list(responses)
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append(("POST", url, kwargs))
        return self.responses.pop(0)

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append(("GET", url, kwargs))
        return self.responses.pop(0)


def build_client(*responses: FakeResponse, api_key: Optional[str] = "test-key") -> tuple[VeoClient, FakeSession]:
    session = FakeSession(*responses)
    config = AppConfig(api_key=api_key, request_timeout=5.0)
    return VeoClient(config, session=session), session


def test_submit_builds_long_running_request():
    client, session = build_client(FakeResponse(payload={"name": "models/veo/operations/op-1"}))

    handle = client.submit(b"png-bytes", "image/png", "16:9")

    assert handle == JobHandle(name="models/veo/operations/op-1")
    method, url, kwargs = session.calls[0]
    assert method == "POST"
    assert url.endswith("/models/veo-3.1-fast-generate-preview:predictLongRunning")
    assert kwargs["headers"]["x-goog-api-key"] == "test-key"
    instance = kwargs["json"]["instances"][0]
    assert base64.b64decode(instance["image"]["bytesBase64Encoded"]) == b"png-bytes"
    assert instance["image"]["mimeType"] == "image/png"
    assert kwargs["json"]["parameters"]["aspectRatio"] == "16:9"
    assert kwargs["json"]["parameters"]["resolution"] == "720p"
    assert kwargs["timeout"] == 5.0


def test_submit_non_success_raises_remote_error():
    body = json.dumps({"error": {"message": "API key not valid.", "status": "INVALID_ARGUMENT"}})
    client, _ = build_client(FakeResponse(status_code=400, text=body))

    with pytest.raises(RemoteServiceError) as excinfo:
        client.submit(b"x", "image/png", "9:16")

    assert excinfo.value.status_code == 400
    assert isinstance(classify(excinfo.value), AuthError)


def test_missing_api_key_is_auth_error():
    client, session = build_client(api_key=None)

    with pytest.raises(RemoteServiceError) as excinfo:
        client.submit(b"x", "image/png", "9:16")

    assert isinstance(classify(excinfo.value), AuthError)
    assert session.calls == []


def test_poll_pending():
    client, session = build_client(FakeResponse(payload={"name": "op", "done": False}))

    status = client.poll(JobHandle(name="models/veo/operations/op"))

    assert status.done is False
    assert session.calls[0][1].endswith("/models/veo/operations/op")


def test_poll_done_with_rest_shape():
    payload = {
        "done": True,
        "response": {
            "generateVideoResponse": {"generatedSamples": [{"video": {"uri": "https://files/v1?alt=media"}}]}
        },
    }
    client, _ = build_client(FakeResponse(payload=payload))

    status = client.poll(JobHandle(name="op"))

    assert status.done is True
    assert status.result_locator == "https://files/v1?alt=media"
    assert status.model_identifier is None


def test_poll_done_with_sdk_shape_and_model():
    payload = {
        "done": True,
        "response": {"model": "veo-3.1", "generatedVideos": [{"video": {"uri": "https://files/v2"}}]},
    }
    client, _ = build_client(FakeResponse(payload=payload))

    status = client.poll(JobHandle(name="op"))

    assert status.result_locator == "https://files/v2"
    assert status.model_identifier == "veo-3.1"


def test_poll_done_without_video():
    client, _ = build_client(FakeResponse(payload={"done": True, "response": {}}))

    assert client.poll(JobHandle(name="op")).result_locator is None


def test_poll_operation_error_carries_json_body():
    error = {"code": 404, "message": "Requested entity was not found.", "status": "NOT_FOUND"}
    client, _ = build_client(FakeResponse(payload={"done": True, "error": error}))

    with pytest.raises(RemoteServiceError) as excinfo:
        client.poll(JobHandle(name="op"))

    assert json.loads(str(excinfo.value)) == {"error": error}


def test_fetch_artifact_appends_key():
    client, session = build_client(
        FakeResponse(content=b"mp4-bytes", headers={"Content-Type": "video/mp4; codecs=avc1"})
    )

    artifact = client.fetch_artifact("https://files/v1?alt=media")

    assert artifact.data == b"mp4-bytes"
    assert artifact.mime_type == "video/mp4"
    method, url, kwargs = session.calls[0]
    assert (method, url) == ("GET", "https://files/v1?alt=media")
    assert kwargs["params"] == {"key": "test-key"}


def test_fetch_artifact_failure():
    client, _ = build_client(FakeResponse(status_code=500, text="internal error"))

    with pytest.raises(DownloadFailed) as excinfo:
        client.fetch_artifact("https://files/v1")

    assert excinfo.value.status_code == 500
    assert excinfo.value.body == "internal error"


def test_set_api_key():
    client, _ = build_client(api_key=None)
    client.set_api_key("fresh")
    assert client.api_key == "fresh"
    with pytest.raises(ValueError):
        client.set_api_key("")
