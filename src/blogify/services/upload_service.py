# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import mimetypes
import random
import re
import time
from pathlib import Path
from typing import Optional

from blogify.errors import UploadError

logger = logging.getLogger(__name__)

UPLOADS_URL_PREFIX = "/uploads"
_EXT_RE = re.compile(r"^[a-z0-9]{1,8}$")


def _extension(filename: str, content_type: str) -> str:
    suffix = Path(filename or "").suffix.lstrip(".").lower()
    if _EXT_RE.match(suffix):
        return suffix
    guessed = mimetypes.guess_extension(content_type or "") or ""
    return guessed.lstrip(".") or "img"


def save_cover_image(
    *,
    filename: str,
    content_type: str,
    content: bytes,
    uploads_dir: Path,
    max_bytes: int,
) -> Optional[str]:
    """Store an uploaded cover image and return its URL path.

    Returns None when no file was chosen (empty filename and body).
    """
    if not filename and not content:
        return None
    if not (content_type or "").lower().startswith("image/"):
        raise UploadError("Only image files are allowed!")
    if len(content) > max_bytes:
        raise UploadError(f"Image is too large (limit is {max_bytes} bytes)")
    if not content:
        raise UploadError("Uploaded image is empty")

    name = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}.{_extension(filename, content_type)}"
    uploads_dir.mkdir(parents=True, exist_ok=True)
    (uploads_dir / name).write_bytes(content)
    logger.info("Stored cover image %s (%d bytes)", name, len(content))
    return f"{UPLOADS_URL_PREFIX}/{name}"


def discard_cover_image(url: Optional[str], *, uploads_dir: Path) -> None:
    """Remove a stored cover image whose blog was never saved."""
    if not url or not url.startswith(UPLOADS_URL_PREFIX + "/"):
        return
    path = uploads_dir / Path(url).name
    path.unlink(missing_ok=True)
    logger.info("Discarded cover image %s", path.name)
