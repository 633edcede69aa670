from __future__ import annotations

import base64
from pathlib import Path
from typing import Optional, Union

from wildlog.api.schemas import MAX_PHOTO_URL_LENGTH

MAX_PHOTO_BYTES = 2 * 1024 * 1024
ALLOWED_MIME_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")
_SUFFIX_TO_MIME = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}


class PhotoError(ValueError):
    """Raised when a photo cannot be embedded in a sighting."""


def validate_photo(data: bytes, mime_type: str) -> None:
    if mime_type not in ALLOWED_MIME_TYPES:
        raise PhotoError("Invalid file format. Please upload a JPEG, PNG, or WebP image.")
    if not data:
        raise PhotoError("No file provided")
    if len(data) > MAX_PHOTO_BYTES:
        size_mb = len(data) / (1024 * 1024)
        raise PhotoError(
            f"File size ({size_mb:.2f}MB) exceeds 2MB limit. Please choose a smaller image."
        )


def photo_to_data_url(data: bytes, mime_type: str) -> str:
    """Encode raw image bytes as a ``data:image/...;base64,`` URL the API accepts."""
    validate_photo(data, mime_type)
    url = f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
    if len(url) > MAX_PHOTO_URL_LENGTH:
        raise PhotoError("Photo must be less than 2MB (base64 encoded)")
    return url


def guess_mime_type(path: Union[str, Path]) -> Optional[str]:
    return _SUFFIX_TO_MIME.get(Path(path).suffix.lower())


def load_photo(path: Union[str, Path]) -> str:
    mime_type = guess_mime_type(path)
    if mime_type is None:
        raise PhotoError("Invalid file format. Please upload a JPEG, PNG, or WebP image.")
    return photo_to_data_url(Path(path).read_bytes(), mime_type)
