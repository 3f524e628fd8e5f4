# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import math
import re
import uuid
from datetime import datetime, timezone
from typing import Iterable, List

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
WORDS_PER_MINUTE = 200


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    """Canonicalise emails for storage and lookups (trim + lower)."""
    return (email or "").strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(normalize_email(email)))


def parse_tags(raw: str | Iterable[str] | None) -> List[str]:
    """Split a comma-separated tag string, trimming blanks and duplicates.

    Order of first appearance is kept; duplicates are detected
    case-insensitively.
    """
    if raw is None:
        return []
    parts = raw.split(",") if isinstance(raw, str) else list(raw)
    out: List[str] = []
    seen = set()
    for p in parts:
        tag = str(p or "").strip()
        if not tag or tag.lower() in seen:
            continue
        seen.add(tag.lower())
        out.append(tag)
    return out


def read_time_minutes(text: str) -> int:
    words = len((text or "").split())
    return max(1, math.ceil(words / WORDS_PER_MINUTE))


def safe_next_url(next_url: str, default: str = "/") -> str:
    """Only allow local absolute paths as post-login redirect targets."""
    n = (next_url or "").strip()
    if not n.startswith("/") or n.startswith("//") or "\\" in n:
        return default
    return n
