from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Optional

from .constants import EXTENSION_BY_IMAGE_MIME, IGNORED_FILENAMES, IMAGE_MIME_BY_EXTENSION

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9.-]")
_STORED_NAME = re.compile(r"^(\d{13})-(.+)$")


def sanitize_filename(raw_name: str) -> str:
    """Replace every character outside ``[A-Za-z0-9.-]`` with ``_``."""
    if not raw_name:
        return "image"
    return _UNSAFE_CHARS.sub("_", raw_name)


def image_extension(filename: str) -> str:
    return PurePosixPath(filename).suffix.lower()


def is_image_filename(filename: str) -> bool:
    return image_extension(filename) in IMAGE_MIME_BY_EXTENSION


def _normalize_mime(content_type: Optional[str]) -> str:
    return (content_type or "").split(";", 1)[0].strip().lower()


def resolve_image_filename(declared_name: str, content_type: Optional[str] = None) -> Optional[str]:
    """
    Return the sanitized filename to store, or None when neither the name's
    extension nor the declared content type is a recognized image type.

    When only the content type is recognized, its canonical extension is
    appended so the stored file keeps an image extension.
    """
    safe_name = sanitize_filename(declared_name)
    if is_image_filename(safe_name):
        return safe_name
    extension = EXTENSION_BY_IMAGE_MIME.get(_normalize_mime(content_type))
    if extension is None:
        return None
    return f"{safe_name}{extension}"


def mime_type_for(filename: str) -> str:
    return IMAGE_MIME_BY_EXTENSION.get(image_extension(filename), "application/octet-stream")


def compose_asset_path(directory: str, timestamp_ms: int, safe_name: str) -> str:
    return f"{directory.strip('/')}/{timestamp_ms}-{safe_name}"


def parse_stored_filename(filename: str) -> tuple[Optional[int], str]:
    """Split ``<13-digit-millis>-<name>`` into its timestamp and logical name."""
    match = _STORED_NAME.match(filename)
    if not match:
        return None, filename
    return int(match.group(1)), match.group(2)


def is_listable_image(name: str) -> bool:
    if not name or name.startswith("."):
        return False
    if name.lower() in IGNORED_FILENAMES:
        return False
    return is_image_filename(name)
