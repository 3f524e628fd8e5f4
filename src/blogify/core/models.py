# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Domain records and their document (dict) representation."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from blogify.core.utils import read_time_minutes, utcnow

ROLE_USER = "USER"
ROLE_ADMIN = "ADMIN"
ROLES = (ROLE_USER, ROLE_ADMIN)

STATUS_PUBLISHED = "published"
STATUS_DRAFT = "draft"
STATUSES = (STATUS_PUBLISHED, STATUS_DRAFT)

DEFAULT_PROFILE_IMAGE = "/static/images/default.svg"
BIO_MAX_LENGTH = 500
COMMENT_MAX_LENGTH = 2000


def _dt(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if value:
        return datetime.fromisoformat(str(value))
    return utcnow()


def _to_doc(record: Any) -> Dict[str, Any]:
    doc = asdict(record)
    for k, v in doc.items():
        if isinstance(v, datetime):
            doc[k] = v.isoformat()
    return doc


@dataclass
class User:
    id: str
    full_name: str
    email: str
    password_hash: str
    role: str = ROLE_USER
    profile_image_url: str = DEFAULT_PROFILE_IMAGE
    bio: str = ""
    is_verified: bool = False
    followers: List[str] = field(default_factory=list)
    following: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_doc(self) -> Dict[str, Any]:
        return _to_doc(self)

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "User":
        role = str(doc.get("role") or ROLE_USER).strip().upper()
        return cls(
            id=str(doc["id"]),
            full_name=str(doc.get("full_name") or ""),
            email=str(doc.get("email") or ""),
            password_hash=str(doc.get("password_hash") or ""),
            role=role if role in ROLES else ROLE_USER,
            profile_image_url=str(doc.get("profile_image_url") or DEFAULT_PROFILE_IMAGE),
            bio=str(doc.get("bio") or ""),
            is_verified=bool(doc.get("is_verified", False)),
            followers=[str(x) for x in (doc.get("followers") or [])],
            following=[str(x) for x in (doc.get("following") or [])],
            created_at=_dt(doc.get("created_at")),
            updated_at=_dt(doc.get("updated_at")),
        )


@dataclass
class Blog:
    id: str
    title: str
    body: str
    created_by: str
    cover_image_url: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    views: int = 0
    likes: List[str] = field(default_factory=list)
    status: str = STATUS_PUBLISHED
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def read_time(self) -> int:
        """Estimated reading time in minutes."""
        return read_time_minutes(self.body)

    @property
    def like_count(self) -> int:
        return len(self.likes)

    @property
    def is_published(self) -> bool:
        return self.status == STATUS_PUBLISHED

    def to_doc(self) -> Dict[str, Any]:
        return _to_doc(self)

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "Blog":
        status = str(doc.get("status") or STATUS_PUBLISHED).strip().lower()
        return cls(
            id=str(doc["id"]),
            title=str(doc.get("title") or ""),
            body=str(doc.get("body") or ""),
            created_by=str(doc.get("created_by") or ""),
            cover_image_url=doc.get("cover_image_url") or None,
            tags=[str(t) for t in (doc.get("tags") or [])],
            views=int(doc.get("views") or 0),
            likes=[str(u) for u in (doc.get("likes") or [])],
            status=status if status in STATUSES else STATUS_PUBLISHED,
            created_at=_dt(doc.get("created_at")),
            updated_at=_dt(doc.get("updated_at")),
        )


@dataclass
class Comment:
    id: str
    content: str
    blog_id: str
    created_by: str
    created_at: datetime = field(default_factory=utcnow)

    def to_doc(self) -> Dict[str, Any]:
        return _to_doc(self)

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "Comment":
        return cls(
            id=str(doc["id"]),
            content=str(doc.get("content") or ""),
            blog_id=str(doc.get("blog_id") or ""),
            created_by=str(doc.get("created_by") or ""),
            created_at=_dt(doc.get("created_at")),
        )
