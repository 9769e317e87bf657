"""Utility helpers for upload validation and image preprocessing."""

from __future__ import annotations

import asyncio
import base64
import binascii
import io
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
MAX_IMAGE_WIDTH = 1920

# Declared content type -> Pillow encoder.
_ACCEPTED_FORMATS = {
    "image/png": "PNG",
    "image/x-png": "PNG",
    "image/jpeg": "JPEG",
    "image/jpg": "JPEG",
    "image/pjpeg": "JPEG",
}

_CANONICAL_MIME = {"PNG": "image/png", "JPEG": "image/jpeg"}

PROCESSING_FAILED_MESSAGE = "Failed to process image"
UNSUPPORTED_TYPE_MESSAGE = "Please upload a PNG or JPG image"


class ImageValidationError(ValueError):
    """Raised when an upload is not an accepted image type."""


class ImageProcessingError(RuntimeError):
    """Raised when an upload cannot be decoded or re-encoded."""


@dataclass(slots=True)
class UploadedImage:
    """A user-supplied file as declared by the client."""

    name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: Path | str, content_type: Optional[str] = None) -> "UploadedImage":
        """Read a file from disk, guessing the content type from its suffix."""
        file_path = Path(path)
        declared = content_type or mimetypes.guess_type(file_path.name)[0] or "application/octet-stream"
        return cls(name=file_path.name, content_type=declared, data=file_path.read_bytes())


def normalize_content_type(content_type: str) -> str:
    """Lower-case a MIME type and drop any parameters."""
    return (content_type or "").split(";", 1)[0].strip().lower()


def is_valid_image_file(image: UploadedImage) -> bool:
    """Return True for PNG and JPEG uploads (including common aliases)."""
    return normalize_content_type(image.content_type) in _ACCEPTED_FORMATS


def is_within_size_limit(image: UploadedImage, max_bytes: int = MAX_UPLOAD_BYTES) -> bool:
    """Return True when the upload does not exceed ``max_bytes``."""
    return image.size <= max_bytes


def to_data_url(data: bytes, mime_type: str) -> str:
    """Encode raw bytes as a base64 data URL."""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def decode_data_url(data_url: str) -> Tuple[str, bytes]:
    """Split a base64 data URL into its MIME type and payload."""
    if not data_url.startswith("data:") or "," not in data_url:
        raise ValueError("Not a data URL")
    header, payload = data_url[5:].split(",", 1)
    if not header.endswith(";base64"):
        raise ValueError("Only base64 data URLs are supported")
    mime_type = header[: -len(";base64")] or "application/octet-stream"
    try:
        return mime_type, base64.b64decode(payload, validate=True)
    except binascii.Error as exc:
        raise ValueError("Malformed base64 payload") from exc


def data_url_to_image(data_url: str) -> Image.Image:
    """Decode a data URL into a Pillow image for display."""
    _, data = decode_data_url(data_url)
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return img.copy()
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageProcessingError(PROCESSING_FAILED_MESSAGE) from exc


def generate_thumbnail(image: Image.Image, max_size: Tuple[int, int] = (256, 256)) -> Image.Image:
    """Create a thumbnail suitable for history previews."""
    thumbnail = image.copy()
    thumbnail.thumbnail(max_size)
    return thumbnail


def _downscale(image: UploadedImage, max_width: int) -> str:
    declared = normalize_content_type(image.content_type)
    try:
        with Image.open(io.BytesIO(image.data)) as img:
            img.load()
            width, height = img.size
            if width <= max_width:
                return to_data_url(image.data, declared or _CANONICAL_MIME.get(img.format or "", "image/png"))

            scale_factor = max_width / width
            new_size = (max_width, max(1, int(height * scale_factor)))
            resized = img.resize(new_size, Image.Resampling.LANCZOS)

            target_format = _ACCEPTED_FORMATS.get(declared, "PNG")
            if target_format == "JPEG" and resized.mode not in ("RGB", "L"):
                resized = resized.convert("RGB")
            buffer = io.BytesIO()
            resized.save(buffer, format=target_format)
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
        raise ImageProcessingError(PROCESSING_FAILED_MESSAGE) from exc

    return to_data_url(buffer.getvalue(), _CANONICAL_MIME[target_format])


async def downscale_image_if_needed(image: UploadedImage, max_width: int = MAX_IMAGE_WIDTH) -> str:
    """Return the upload as a data URL, resized to ``max_width`` if wider.

    Aspect ratio is preserved with the scale factor ``max_width / width``.
    Images that already fit are returned byte-for-byte. Decoding runs in a
    worker thread so the event loop stays responsive.
    """
    return await asyncio.to_thread(_downscale, image, max_width)
