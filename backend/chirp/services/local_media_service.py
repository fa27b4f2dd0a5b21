"""
Chirp Backend — Local Media Host
==================================

What:  Media host that keeps images on local disk and serves them from
       GET /api/v1/media/{path}.
How:   Decodes base64 data URIs, validates size and real image format,
       stores in date-organized directories under UUID filenames.
Who:   Default host for development and tests (MEDIA_BACKEND=local).

Validation order:
    1. Source shape: "data:image/<type>;base64,<payload>" (http(s) URLs are
       kept as-is, they are already hosted elsewhere)
    2. Declared MIME type in the allowed list
    3. Payload decodes as base64
    4. Decoded size under settings.max_image_size
    5. Pillow identifies the bytes as PNG, JPEG, GIF or WEBP

Directory Structure:
    storage/
    └── 2026/
        └── 10/
            └── 19/
                ├── a1b2c3d4-5678.jpg
                └── e5f6g7h8-9012.png
"""

import base64
import binascii
import io
import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
from PIL import Image, UnidentifiedImageError

from chirp.config import settings
from chirp.exceptions import MediaHostError, ValidationError
from chirp.services.media_base import MediaHost

logger = logging.getLogger(__name__)

# ── Allowed Image Types ───────────────────────────────────────────────────
ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
}

# Pillow format name → canonical MIME type
PILLOW_FORMATS = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "GIF": "image/gif",
    "WEBP": "image/webp",
}


def split_data_uri(source: str) -> Tuple[str, str]:
    """
    Split "data:<mime>;base64,<payload>" into (mime, payload).

    Raises:
        ValidationError: The source is not a base64 data URI.
    """
    header, sep, payload = source.partition(",")
    if not sep or not header.startswith("data:") or not header.endswith(";base64"):
        raise ValidationError(
            message="Image must be a base64 data URI or an http(s) URL",
            field="img",
        )
    mime_type = header[len("data:"):-len(";base64")].strip().lower()
    return mime_type, payload


class LocalMediaHost(MediaHost):
    """Stores images below storage_root; URLs are <url_prefix>/<YYYY/MM/DD/uuid.ext>."""

    def __init__(
        self,
        storage_root: Optional[str] = None,
        url_prefix: Optional[str] = None,
        max_size: Optional[int] = None,
    ):
        """
        Args:
            storage_root: Override settings.storage_root (used in tests).
            url_prefix: Override settings.media_url_prefix.
            max_size: Override settings.max_image_size, in bytes.
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.url_prefix = (url_prefix or settings.media_url_prefix).rstrip("/")
        self.max_size = max_size or settings.max_image_size
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("LocalMediaHost initialized with storage_root=%s", self.storage_root)

    # ── Validation ────────────────────────────────────────────────────────

    def decode(self, source: str) -> Tuple[bytes, str]:
        """
        Validate a data URI and return (image_bytes, extension).

        Raises:
            ValidationError with a human-readable message for each rejection.
        """
        mime_type, payload = split_data_uri(source)
        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"Image type '{mime_type}' is not supported. "
                    f"Allowed types: PNG, JPEG, GIF, WEBP"
                ),
                field="img",
                context={"declared_mime": mime_type},
            )

        try:
            content = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError):
            raise ValidationError(message="Image data is not valid base64", field="img")

        if len(content) > self.max_size:
            max_mb = self.max_size / (1024 * 1024)
            raise ValidationError(
                message=(
                    f"Image size ({len(content) / (1024 * 1024):.1f}MB) "
                    f"exceeds maximum of {max_mb:.0f}MB."
                ),
                field="img",
                context={"max_size_mb": max_mb, "actual_size": len(content)},
            )

        detected = self.detect_mime_type(content)
        return content, ALLOWED_MIME_TYPES[detected]

    def detect_mime_type(self, content: bytes) -> str:
        """Identify the real image format from its bytes."""
        try:
            with Image.open(io.BytesIO(content)) as image:
                image_format = image.format
                image.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise ValidationError(
                message="Image content is not a valid image",
                field="img",
                context={"error": str(e)},
            )

        mime_type = PILLOW_FORMATS.get(image_format or "")
        if mime_type is None:
            raise ValidationError(
                message=f"Image format '{image_format}' is not supported.",
                field="img",
                context={"detected_format": image_format},
            )
        return mime_type

    # ── Storage ───────────────────────────────────────────────────────────

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        now = datetime.now(timezone.utc)
        relative_path = f"{now.strftime('%Y/%m/%d')}/{uuid.uuid4()}{extension}"
        return self.storage_root / relative_path, relative_path

    def resolve(self, relative_path: str) -> Optional[Path]:
        """
        Map a media path back to a file under storage_root.

        Returns None when the path escapes storage_root or does not exist.
        """
        candidate = (self.storage_root / relative_path).resolve()
        if self.storage_root not in candidate.parents:
            return None
        if not candidate.is_file():
            return None
        return candidate

    async def upload(self, source: str) -> str:
        if source.startswith(("http://", "https://")):
            return source

        content, extension = self.decode(source)
        absolute_path, relative_path = self._generate_storage_path(extension)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store image at %s: %s", absolute_path, str(e))
            raise MediaHostError(
                message="Failed to save image. Please try again.",
                context={"path": relative_path, "os_error": str(e)},
            )

        logger.info("Image stored: %s (%d bytes)", relative_path, len(content))
        return f"{self.url_prefix}/{relative_path}"

    async def delete(self, url: str) -> None:
        prefix = f"{self.url_prefix}/"
        if not url.startswith(prefix):
            logger.info("Skipping delete for externally hosted image: %s", url)
            return

        path = self.resolve(url[len(prefix):])
        if path is None:
            logger.debug("Delete: image already gone: %s", url)
            return

        try:
            os.remove(path)
        except OSError as e:
            logger.error("Failed to delete image %s: %s", path, str(e))
            raise MediaHostError(
                message="Image deletion failed. Please try again later.",
                context={"os_error": str(e)},
            )
        logger.info("Deleted image: %s", path.name)

    def health_status(self) -> str:
        return "available"
