"""Persist admitted image uploads to the upload directory."""
from __future__ import annotations

import uuid
from pathlib import Path

from fastapi import UploadFile

from ..errors import BadInputError, UploadTooLargeError
from ..utils.logger import get_logger
from .resources import remove_upload

logger = get_logger(__name__)

CHUNK_SIZE = 64 * 1024


async def save_upload(upload: UploadFile, upload_dir: Path, max_bytes: int) -> Path:
    """Write ``upload`` to a uniquely named file and return its path.

    Only ``image/*`` content types are admitted and the body may not exceed
    ``max_bytes``; a rejected body never leaves a file behind.
    """
    content_type = upload.content_type or ""
    if not content_type.startswith("image/"):
        raise BadInputError("Only image files are allowed!")

    upload_dir.mkdir(parents=True, exist_ok=True)
    path = upload_dir / uuid.uuid4().hex
    written = 0
    try:
        with path.open("wb") as handle:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > max_bytes:
                    raise UploadTooLargeError(f"File exceeds {max_bytes} byte limit")
                handle.write(chunk)
    except Exception:
        remove_upload(path)
        raise

    logger.debug("Saved upload", path=str(path), size=written, filename=upload.filename)
    return path
