"""Utility helpers for image payloads and history thumbnails."""

from __future__ import annotations

import base64
import binascii
import io
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Tuple, Union

from PIL import Image, UnidentifiedImageError

from modules.services.errors import ImageReadError

ImageSource = Union[str, Path, bytes, Image.Image]

WIDE_ASPECT = "16:9"
TALL_ASPECT = "9:16"


@dataclass(slots=True)
class ImagePayload:
    """Encoded image bytes plus the properties the generation request needs."""

    data: bytes
    mime_type: str
    width: int
    height: int

    @property
    def aspect_hint(self) -> str:
        """Wide inputs select 16:9, tall or square ones 9:16."""
        return WIDE_ASPECT if self.width > self.height else TALL_ASPECT

    def to_base64(self) -> str:
        return encode_base64(self.data)


def _read_bytes(source: ImageSource) -> bytes:
    if isinstance(source, bytes):
        return source
    if isinstance(source, Image.Image):
        buffer = io.BytesIO()
        source.save(buffer, format=source.format or "PNG")
        return buffer.getvalue()
    try:
        return Path(source).read_bytes()
    except OSError as exc:
        raise ImageReadError(f"Failed to read file {source}: {exc}") from exc


def load_image_payload(source: ImageSource) -> ImagePayload:
    """Read an image from a path, raw bytes or a PIL image."""
    data = _read_bytes(source)
    try:
        with Image.open(io.BytesIO(data)) as image:
            width, height = image.size
            image_format = image.format or "PNG"
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise ImageReadError("Could not read image file to determine dimensions.") from exc

    mime_type = Image.MIME.get(image_format.upper(), "image/png")
    return ImagePayload(data=data, mime_type=mime_type, width=width, height=height)


def encode_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def decode_base64(text: str) -> bytes:
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ImageReadError(f"Failed to read file: invalid base64 data ({exc})") from exc


def generate_thumbnail(image_base64: str, max_size: Tuple[int, int] = (256, 256)) -> Any:
    """Create a thumbnail suitable for history previews."""
    data = decode_base64(image_base64)
    try:
        with Image.open(io.BytesIO(data)) as image:
            thumb = image.convert("RGB")
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageReadError("Could not read image file for thumbnail.") from exc
    thumb.thumbnail(max_size)
    return thumb
