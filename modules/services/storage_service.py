"""Key-value persistence backends and exported video storage."""

from __future__ import annotations

import errno
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol

logger = logging.getLogger(__name__)

_OUT_OF_SPACE = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}
_VIDEO_EXTENSIONS = {"video/mp4": ".mp4", "video/webm": ".webm", "video/quicktime": ".mov"}


class StorageQuotaExceeded(Exception):
    """A write did not fit in the backend's storage budget."""


class StorageBackend(Protocol):
    """Single-slot string storage used by the history store."""

    def read(self, key: str) -> Optional[str]: ...

    def write(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


def _check_quota(value: str, quota_bytes: Optional[int]) -> None:
    if quota_bytes is None:
        return
    size = len(value.encode("utf-8"))
    if size > quota_bytes:
        raise StorageQuotaExceeded(f"Storage quota exceeded: {size} bytes > {quota_bytes} bytes")


class InMemoryStorageBackend:
    """Dictionary-backed storage; ``quota_bytes`` caps each stored value."""

    def __init__(self, quota_bytes: Optional[int] = None) -> None:
        self.quota_bytes = quota_bytes
        self._data: Dict[str, str] = {}

    def read(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def write(self, key: str, value: str) -> None:
        _check_quota(value, self.quota_bytes)
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class FileStorageBackend:
    """Store each key as ``<root>/<key>.json``, written atomically."""

    def __init__(self, root: Path, quota_bytes: Optional[int] = None) -> None:
        self.root = Path(root)
        self.quota_bytes = quota_bytes

    def _path(self, key: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", key)
        return self.root / f"{safe}.json"

    def read(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def write(self, key: str, value: str) -> None:
        _check_quota(value, self.quota_bytes)
        self.root.mkdir(parents=True, exist_ok=True)
        target = self._path(key)
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{target.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, target)
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            if exc.errno in _OUT_OF_SPACE:
                raise StorageQuotaExceeded(f"No space left to store {key}") from exc
            raise

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class StorageService:
    """Handle saving generated videos for playback."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)

    def save_video(self, data: bytes, mime_type: str, name: str) -> Path:
        """Persist a video and return the file path."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        extension = _VIDEO_EXTENSIONS.get((mime_type or "").lower(), ".mp4")
        path = self.output_dir / f"{name}{extension}"
        path.write_bytes(data)
        return path

    def cleanup(self, max_items: int = 100) -> None:
        """Limit the number of stored videos, removing the oldest first."""
        if not self.output_dir.exists():
            return
        files = sorted(
            (child for child in self.output_dir.iterdir() if child.is_file()),
            key=lambda child: child.stat().st_mtime,
            reverse=True,
        )
        for stale in files[max(max_items, 0):]:
            try:
                stale.unlink()
            except OSError as exc:
                logger.warning("Could not remove exported video %s: %s", stale, exc)
