from __future__ import annotations

from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parent

ROUTE_PREFIX = "/imagehub"

DEFAULT_BRANCH = "main"
DEFAULT_DIRECTORY = "public/images"
DEFAULT_API_BASE_URL = "https://api.github.com"
DEFAULT_CONTENT_HOST = "raw.githubusercontent.com"
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024

PLACEHOLDER_FILENAME = ".gitkeep"

# GitHub serves at most this many entries from a single contents listing.
CONTENTS_LISTING_LIMIT = 1000

IMAGE_MIME_BY_EXTENSION = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
    ".bmp": "image/bmp",
    ".avif": "image/avif",
    ".ico": "image/x-icon",
}

EXTENSION_BY_IMAGE_MIME = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/pjpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/svg+xml": ".svg",
    "image/bmp": ".bmp",
    "image/avif": ".avif",
    "image/x-icon": ".ico",
    "image/vnd.microsoft.icon": ".ico",
}

IGNORED_FILENAMES = {
    ".gitkeep",
    ".keep",
    ".gitignore",
    "readme.md",
    "thumbs.db",
    ".ds_store",
    "desktop.ini",
}
