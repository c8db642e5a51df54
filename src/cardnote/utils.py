"""Shared utility functions for cardnote."""

import re
from pathlib import Path

IMAGE_MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
}

IMAGE_EXTENSIONS = set(IMAGE_MIME_TYPES)

_FORBIDDEN_NAME_CHARS = re.compile(r'[\\/:"*?<>|]+')


def get_unique_path(dest: Path) -> Path:
    """Get a free path by appending `` (1)``, `` (2)``, ... to the stem.

    The probe is linear so the result is deterministic for a given set of
    existing files.

    Args:
        dest: The desired destination path

    Returns:
        The original path if it doesn't exist, or a path with a counter suffix
    """
    if not dest.exists():
        return dest

    stem = dest.stem
    suffix = dest.suffix
    parent = dest.parent
    counter = 1

    while dest.exists():
        dest = parent / f"{stem} ({counter}){suffix}"
        counter += 1

    return dest


def sanitize_file_name(name: str) -> str:
    """Strip characters that are not allowed in vault file names."""
    return _FORBIDDEN_NAME_CHARS.sub("", name).strip() or "contact"


def is_image_file(path: Path) -> bool:
    return path.suffix.lower() in IMAGE_EXTENSIONS


def mime_type_for(path: Path) -> str:
    """MIME type derived from the file extension, defaulting to JPEG."""
    return IMAGE_MIME_TYPES.get(path.suffix.lower(), "image/jpeg")
