"""Error taxonomy and classification for the animation workflow.

The remote service does not publish a stable error vocabulary, so every raw
failure is funnelled through :func:`classify`. The matching table below is the
only place that knows about the service's wording.
"""

from __future__ import annotations

import json
from typing import Any, Iterable, Optional

import requests


# Raw failures raised inside the workflow --------------------------------------
class ImageReadError(Exception):
    """The source image could not be decoded."""


class NoVideoReturned(Exception):
    """The operation finished without a result locator."""

    def __init__(self) -> None:
        super().__init__("Video generation succeeded, but no download link was returned.")


class DownloadFailed(Exception):
    """Artifact retrieval answered with a non-success status."""

    def __init__(self, status_code: int, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Download failed with status {status_code}: {body}")


class RemoteServiceError(Exception):
    """Non-success response from the generation API. ``str()`` is the body text."""

    def __init__(self, status_code: Optional[int], body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(body)


# Classified errors surfaced to callers ----------------------------------------
class AnimationError(Exception):
    """Base class for user-presentable animation failures."""

    category = "unknown"
    default_message = "An unexpected error occurred during the animation process. Please try again."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        detail: Optional[str] = None,
    ) -> None:
        self.message = message or self.default_message
        self.status_code = status_code
        self.detail = detail
        super().__init__(self.message)


class TransportError(AnimationError):
    category = "transport"
    default_message = (
        "Could not reach the AI service. Please check your network connection and try again."
    )


class InputError(AnimationError):
    category = "input"
    default_message = (
        "The uploaded file appears to be corrupted or is in an unsupported format. "
        "Please try a different image."
    )


class AuthError(AnimationError):
    category = "auth"
    default_message = "Authentication with the AI service failed. This is a configuration issue."


class QuotaError(AnimationError):
    category = "quota"
    default_message = (
        "You have exceeded your API quota. Please check your plan and billing details, "
        "or try again later."
    )


class TransientError(AnimationError):
    category = "transient"
    default_message = (
        "The request timed out as the service is temporarily unavailable. Please try again later."
    )


class DownloadError(AnimationError):
    category = "download"
    default_message = (
        "Failed to retrieve the final video, which may be due to a network issue. "
        "Please check your connection and try again."
    )


class NoResultError(AnimationError):
    category = "no_result"
    default_message = (
        "The AI was unable to create an animation from this specific image. "
        "Please try a different one."
    )


class CredentialResetSignal(AnimationError):
    """The configured credential no longer resolves; the caller should re-authenticate."""

    category = "credential_reset"
    default_message = "Requested entity was not found."


class UnknownError(AnimationError):
    category = "unknown"


# Ordered, first match wins.
_MATCH_TABLE: tuple[tuple[type[AnimationError], tuple[str, ...]], ...] = (
    (CredentialResetSignal, ("requested entity was not found",)),
    (InputError, ("failed to read file", "could not read image file")),
    (AuthError, ("api key not valid",)),
    (QuotaError, ("rate limit", "resource_exhausted", "quota")),
    (
        TransientError,
        ("deadline exceeded", "deadline_exceeded", "503 service unavailable", "unavailable"),
    ),
    (DownloadError, ("download failed with status",)),
    (NoResultError, ("no download link was returned",)),
)

DEFAULT_PASSTHROUGH = frozenset({CredentialResetSignal.category})


def _raw_text(raw: Any) -> str:
    if isinstance(raw, str):
        return raw
    if isinstance(raw, BaseException):
        text = str(raw)
        return text or type(raw).__name__
    return repr(raw)


def effective_text(raw_text: str) -> str:
    """Return ``"message status"`` for JSON error bodies, the raw text otherwise."""
    stripped = raw_text.strip()
    if not stripped.startswith("{"):
        return raw_text
    try:
        parsed = json.loads(stripped)
    except ValueError:
        return raw_text
    if not isinstance(parsed, dict):
        return raw_text
    error_data = parsed.get("error") or parsed
    if isinstance(error_data, dict) and error_data.get("message"):
        return f"{error_data['message']} {error_data.get('status') or ''}".strip()
    return raw_text


class ErrorClassifier:
    """Map raw failures to :class:`AnimationError` categories."""

    def __init__(self, passthrough: Optional[Iterable[str]] = None) -> None:
        self.passthrough = (
            frozenset(name.lower() for name in passthrough)
            if passthrough is not None
            else DEFAULT_PASSTHROUGH
        )

    def classify(self, raw: Any) -> AnimationError:
        """Return the classified error for ``raw``. Never raises."""
        if isinstance(raw, AnimationError):
            return raw

        original = _raw_text(raw)
        # Typed sentinels carry response bodies that may contain table keywords.
        if isinstance(raw, DownloadFailed):
            if DownloadError.category in self.passthrough:
                return DownloadError(original, status_code=raw.status_code, detail=raw.body)
            return DownloadError(status_code=raw.status_code, detail=raw.body)
        if isinstance(raw, NoVideoReturned):
            return NoResultError(detail=original)

        lowered = effective_text(original).lower()
        status_code = getattr(raw, "status_code", None)

        error_cls: type[AnimationError] = UnknownError
        for candidate, needles in _MATCH_TABLE:
            if any(needle in lowered for needle in needles):
                error_cls = candidate
                break
        else:
            if isinstance(raw, requests.RequestException):
                error_cls = TransportError

        if error_cls is UnknownError:
            return UnknownError(
                f"A technical issue occurred: {original}",
                status_code=status_code,
                detail=original,
            )
        if error_cls.category in self.passthrough:
            return error_cls(original, status_code=status_code, detail=original)
        return error_cls(status_code=status_code, detail=original)


_default_classifier = ErrorClassifier()


def classify(raw: Any) -> AnimationError:
    """Classify ``raw`` with the default passthrough policy."""
    return _default_classifier.classify(raw)
