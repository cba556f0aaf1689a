"""Generation history tracking."""

from __future__ import annotations

import errno
import json
import logging
import time
from dataclasses import asdict, dataclass, fields
from typing import Any, List, Optional

from modules.services.storage_service import StorageBackend, StorageQuotaExceeded

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 5
DEFAULT_HISTORY_KEY = "ai-video-animator-history"

_QUOTA_ERROR_NAMES = {"QuotaExceededError", "NS_ERROR_DOM_QUOTA_REACHED", "StorageQuotaExceeded"}


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """A completed animation: source image, resulting video and timing metadata."""

    id: str
    source_image: str  # base64
    result_artifact: str  # base64
    artifact_mime_type: str
    generation_duration_ms: int
    model_identifier: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Any) -> "HistoryEntry":
        """Build an entry from decoded JSON, raising ValueError on malformed data."""
        if not isinstance(payload, dict):
            raise ValueError(f"history entry must be an object, got {type(payload).__name__}")
        values: dict[str, Any] = {}
        for item in fields(cls):
            if item.name not in payload:
                raise ValueError(f"history entry missing {item.name!r}")
            values[item.name] = payload[item.name]
        duration = values["generation_duration_ms"]
        if isinstance(duration, bool) or not isinstance(duration, int):
            raise ValueError("generation_duration_ms must be an integer")
        for name in ("id", "source_image", "result_artifact", "artifact_mime_type", "model_identifier"):
            if not isinstance(values[name], str):
                raise ValueError(f"{name} must be a string")
        return cls(**values)


def is_quota_error(exc: BaseException) -> bool:
    """Return True when a storage failure means the backend ran out of room."""
    if isinstance(exc, StorageQuotaExceeded):
        return True
    if type(exc).__name__ in _QUOTA_ERROR_NAMES or getattr(exc, "name", None) in _QUOTA_ERROR_NAMES:
        return True
    if isinstance(exc, OSError) and exc.errno == errno.ENOSPC:
        return True
    return "quota" in str(exc).lower()


class HistoryStore:
    """Newest-first history capped at ``capacity`` entries, persisted as one JSON blob.

    Persistence is best effort: storage failures are logged and never raised, and
    under quota pressure the oldest entries are dropped until the blob fits.
    """

    def __init__(
        self,
        backend: StorageBackend,
        key: str = DEFAULT_HISTORY_KEY,
        capacity: int = HISTORY_LIMIT,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.backend = backend
        self.key = key
        self.capacity = capacity
        self._entries: List[HistoryEntry] = []

    @property
    def entries(self) -> List[HistoryEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def next_entry_id(self) -> str:
        """Millisecond timestamp id, strictly newer than the newest stored entry."""
        candidate = int(time.time() * 1000)
        if self._entries and self._entries[0].id.isdecimal():
            candidate = max(candidate, int(self._entries[0].id) + 1)
        return str(candidate)

    def load(self) -> List[HistoryEntry]:
        """Read the persisted history. Unreadable data is discarded, never raised."""
        try:
            raw = self.backend.read(self.key)
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to read history: %s", exc)
            self._discard_blob()
            self._entries = []
            return []

        if not raw:
            self._entries = []
            return []

        try:
            decoded = json.loads(raw)
            if not isinstance(decoded, list):
                raise ValueError("history blob is not a list")
            entries = [HistoryEntry.from_dict(item) for item in decoded]
        except ValueError as exc:
            logger.error("Failed to load history, clearing corrupted data: %s", exc)
            self._discard_blob()
            self._entries = []
            return []

        self._entries = entries[: self.capacity]
        return self.entries

    def insert(self, entry: HistoryEntry) -> None:
        """Prepend ``entry`` and persist, evicting oldest entries under quota pressure."""
        fresh = [entry, *self._entries][: self.capacity]
        to_save = list(fresh)

        while to_save:
            try:
                self.backend.write(self.key, self._serialize(to_save))
            except Exception as exc:  # noqa: BLE001
                if not is_quota_error(exc):
                    logger.error("Failed to save history: %s", exc)
                    self._entries = fresh
                    return
                logger.warning(
                    "History storage quota exceeded. Removing oldest item to make space (%d left).",
                    len(to_save) - 1,
                )
                to_save.pop()
                continue
            self._entries = to_save
            return

        self._discard_blob()
        self._entries = []

    def clear(self) -> None:
        """Remove every entry from memory and storage."""
        self._entries = []
        try:
            self.backend.delete(self.key)
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to clear history from storage: %s", exc)

    def _serialize(self, entries: List[HistoryEntry]) -> str:
        return json.dumps([item.to_dict() for item in entries])

    def _discard_blob(self) -> None:
        try:
            self.backend.delete(self.key)
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to delete history blob: %s", exc)
