"""Image artifact files and media references."""

from __future__ import annotations

import io
import time
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from ..errors import ErrorCategory, ProviderError
from ..utils import decode_data_url

_CONTENT_TYPE_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/webp": "webp",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
}


def extension_for(content_type: str | None, default: str = "png") -> str:
    if not content_type:
        return default
    mime = content_type.split(";", 1)[0].strip().lower()
    return _CONTENT_TYPE_EXTENSIONS.get(mime, default)


def build_artifact_path(out_dir: str | None, idx: int, extension: str, prefix: str = "artifact") -> Path:
    base_dir = Path(out_dir) if out_dir else Path(".")
    base_dir.mkdir(parents=True, exist_ok=True)
    stamp = int(time.time() * 1000)
    path = base_dir / f"{prefix}-{stamp}-{idx:02d}.{extension}"
    while path.exists():
        idx += 1
        path = base_dir / f"{prefix}-{stamp}-{idx:02d}.{extension}"
    return path


def write_artifact(out_dir: str | None, data: bytes, extension: str, idx: int = 0, prefix: str = "artifact") -> Path:
    path = build_artifact_path(out_dir, idx, extension, prefix=prefix)
    path.write_bytes(data)
    return path


def image_size(data: bytes) -> tuple[int | None, int | None]:
    try:
        with Image.open(io.BytesIO(data)) as image:
            return image.size
    except (UnidentifiedImageError, OSError):
        return None, None


def read_media(ref: str) -> bytes:
    """Load the bytes behind a media reference (file path or data URL)."""
    if ref.startswith("data:"):
        try:
            data, _ = decode_data_url(ref)
        except ValueError as exc:
            raise ProviderError(ErrorCategory.UNSUPPORTED_MEDIA, "Image data URL is not valid base64.") from exc
        return data
    path = Path(ref)
    if not path.exists():
        raise ProviderError(ErrorCategory.INVALID_REQUEST, f"Image not found: {ref}")
    return path.read_bytes()


UPLOAD_FORMATS = ("JPEG", "PNG", "WEBP")


def verify_upload(data: bytes) -> str:
    """Return the Pillow format name of an uploaded image, or raise `UNSUPPORTED_MEDIA`."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            image_format = image.format
            image.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
        raise ProviderError(ErrorCategory.UNSUPPORTED_MEDIA, "Uploaded file is not a readable image.") from exc
    if image_format not in UPLOAD_FORMATS:
        raise ProviderError(
            ErrorCategory.UNSUPPORTED_MEDIA,
            f"Unsupported image format {image_format}; upload JPEG, PNG or WebP.",
        )
    return image_format
