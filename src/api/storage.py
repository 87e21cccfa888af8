"""
Cover image storage on local disk.

Covers are written under MEDIA_ROOT/covers and referenced from the database by
their path relative to MEDIA_ROOT.
"""

from __future__ import annotations

import logging
import os
import re
import uuid
from pathlib import Path
from typing import Optional

from fastapi import HTTPException, UploadFile

logger = logging.getLogger(__name__)

COVERS_DIR = "covers"

_MAX_COVER_BYTES_DEFAULT = 5 * 1024 * 1024  # 5MB
_ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif"}

# Anchor relative MEDIA_ROOT values to the project root, not the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parents[2]


# PUBLIC_INTERFACE
def media_root() -> Path:
    """
    Return the absolute directory where media files are stored.

    An absolute MEDIA_ROOT is used as-is; a relative one (or the default
    "media") is resolved against the project root.
    """
    configured = os.getenv("MEDIA_ROOT", "media").strip() or "media"
    raw = Path(configured)
    root = raw if raw.is_absolute() else _PROJECT_ROOT / raw
    return root.resolve()


def _max_cover_bytes() -> int:
    try:
        return int(os.getenv("MAX_COVER_BYTES", str(_MAX_COVER_BYTES_DEFAULT)))
    except ValueError:
        return _MAX_COVER_BYTES_DEFAULT


def _sanitize_filename(name: str) -> str:
    name = name.strip().replace("\\", "_").replace("/", "_")
    name = re.sub(r"[^A-Za-z0-9._-]+", "_", name)
    return name or "cover.jpg"


def resolve_media_path(stored_path: str) -> Optional[Path]:
    """
    Resolve a stored relative path under MEDIA_ROOT.

    Returns None for empty paths or paths escaping MEDIA_ROOT.
    """
    if not stored_path:
        return None
    root = media_root()
    candidate = (root / stored_path).resolve()
    try:
        candidate.relative_to(root)
    except ValueError:
        return None
    return candidate


# PUBLIC_INTERFACE
def save_cover(upload: UploadFile) -> str:
    """
    Validate an uploaded cover image and write it to disk.

    Returns:
        The stored path relative to MEDIA_ROOT (e.g. "covers/<uuid>_name.png").

    Raises:
        HTTPException: 400 for non-images or empty files, 413 for oversized files.
    """
    safe_name = _sanitize_filename(upload.filename or "cover.jpg")
    if Path(safe_name).suffix.lower() not in _ALLOWED_EXTENSIONS:
        raise HTTPException(status_code=400, detail="Cover must be a jpg, png, webp or gif image.")

    content_type = (upload.content_type or "").lower()
    if content_type and not content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Invalid content type; expected an image.")

    content = upload.file.read()
    if len(content) == 0:
        raise HTTPException(status_code=400, detail="Empty file.")
    if len(content) > _max_cover_bytes():
        raise HTTPException(status_code=413, detail="File too large.")

    covers = media_root() / COVERS_DIR
    covers.mkdir(parents=True, exist_ok=True)

    stored = f"{COVERS_DIR}/{uuid.uuid4()}_{safe_name}"
    try:
        (media_root() / stored).write_bytes(content)
    except OSError:
        raise HTTPException(status_code=500, detail="Failed to store file.")

    logger.info("cover_saved: path=%s size_bytes=%s", stored, len(content))
    return stored


# PUBLIC_INTERFACE
def delete_media_file(stored_path: Optional[str]) -> bool:
    """
    Remove a stored media file.

    Returns True if a file was removed. Missing files and paths outside
    MEDIA_ROOT are logged and reported as False.
    """
    if not stored_path:
        return False

    path = resolve_media_path(stored_path)
    if path is None:
        logger.warning("media_delete_rejected: stored_path=%r media_root=%s", stored_path, media_root())
        return False

    try:
        path.unlink()
    except FileNotFoundError:
        logger.warning("media_delete_missing: path=%s", path)
        return False
    except OSError as exc:
        logger.warning("media_delete_failed: path=%s exc=%s", path, exc.__class__.__name__)
        return False

    logger.info("media_deleted: path=%s", path)
    return True
