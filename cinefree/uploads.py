"""Validation and on-disk storage for uploaded movie files."""

from __future__ import annotations

import logging
import re
import time
from contextlib import suppress
from pathlib import Path, PurePosixPath
from typing import List, Optional, Tuple

import aiofiles
from fastapi import UploadFile

logger = logging.getLogger(__name__)

UPLOAD_URL_PREFIX = "/uploads"
CHUNK_SIZE = 1024 * 1024

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class MissingFieldsError(ValueError):
    """Raised when required movie metadata is absent or blank."""

    def __init__(self, fields: List[str]) -> None:
        self.fields = fields
        super().__init__(f"Missing fields: {', '.join(fields)}")


def validate_metadata(
    title: Optional[str], genre: Optional[str], description: Optional[str]
) -> Tuple[str, str, str]:
    """Return the trimmed metadata, or raise listing every blank field."""

    values = {
        "title": (title or "").strip(),
        "genre": (genre or "").strip(),
        "description": (description or "").strip(),
    }
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise MissingFieldsError(missing)
    return values["title"], values["genre"], values["description"]


def sanitize_filename(filename: str) -> str:
    name = _UNSAFE_CHARS.sub("_", filename or "")
    return name or "video"


def build_storage_name(original: str, now_ns: Optional[int] = None) -> str:
    """Prefix the sanitized name with a nanosecond timestamp."""

    timestamp = time.time_ns() if now_ns is None else now_ns
    return f"{timestamp}_{sanitize_filename(original)}"


def video_url_for(stored_name: str) -> str:
    return f"{UPLOAD_URL_PREFIX}/{stored_name}"


async def save_upload(upload: UploadFile, directory: Path) -> str:
    """Stream an upload into ``directory`` and return the stored file name.

    The file is opened in exclusive-create mode, so an existing upload is
    never overwritten.
    """

    directory.mkdir(parents=True, exist_ok=True)
    stored_name = build_storage_name(upload.filename or "")
    destination = directory / stored_name
    opened = False
    try:
        async with aiofiles.open(destination, "xb") as out_file:
            opened = True
            while chunk := await upload.read(CHUNK_SIZE):
                await out_file.write(chunk)
    except BaseException:
        # A partial file must not outlive a failed upload.
        if opened:
            with suppress(OSError):
                destination.unlink()
        raise
    return stored_name


def remove_upload(video_url: Optional[str], directory: Path) -> bool:
    """Best-effort removal of the file behind a stored video reference."""

    if not video_url:
        return False
    # Only the basename is trusted; the reference never leaves the upload dir.
    name = PurePosixPath(video_url).name
    if name in ("", ".", ".."):
        return False
    path = directory / name
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as exc:
        logger.warning("Failed to remove video file %s: %s", path, exc)
        return False
    return True
