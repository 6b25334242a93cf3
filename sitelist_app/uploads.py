from __future__ import annotations

import base64
import binascii
import re
from pathlib import Path
from uuid import uuid4

from .tree import ValidationError

IMAGE_EXTS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/x-icon": ".ico",
    "image/vnd.microsoft.icon": ".ico",
}

_DATA_URL = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.+)$", re.DOTALL)


def decode_data_url(payload: str) -> tuple[str, bytes]:
    """Split a base64 `data:` URL into (extension, raw bytes)."""
    if not isinstance(payload, str):
        raise ValidationError("Image must be a data URL string.")
    match = _DATA_URL.match(payload.strip())
    if not match:
        raise ValidationError("Image must be a base64 data URL.")
    mime = match.group("mime").lower()
    ext = IMAGE_EXTS.get(mime)
    if ext is None:
        raise ValidationError(f"Unsupported image type: {mime}")
    try:
        raw = base64.b64decode(match.group("data"), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError(f"Invalid base64 image data: {exc}") from exc
    if not raw:
        raise ValidationError("Image is empty.")
    return ext, raw


def save_image(payload: str, upload_dir: Path) -> str:
    ext, raw = decode_data_url(payload)
    upload_dir.mkdir(parents=True, exist_ok=True)
    filename = f"{uuid4().hex}{ext}"
    (upload_dir / filename).write_bytes(raw)
    return filename
