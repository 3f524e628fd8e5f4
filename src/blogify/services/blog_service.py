# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from blogify.core.models import (
    COMMENT_MAX_LENGTH,
    STATUS_PUBLISHED,
    STATUSES,
    Blog,
    Comment,
    User,
)
from blogify.core.utils import new_id, parse_tags
from blogify.errors import NotFoundError, ValidationError
from blogify.infra.store import DocumentStore

logger = logging.getLogger(__name__)

RELATED_LIMIT = 3


@dataclass
class FeedPage:
    blogs: List[Blog]
    page: int
    pages: int
    total: int
    q: str = ""
    tag: str = ""
    authors: Dict[str, User] = field(default_factory=dict)

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.pages


@dataclass
class LikeResult:
    likes: int
    liked: bool


def _newest_first(blogs: List[Blog]) -> List[Blog]:
    return sorted(blogs, key=lambda b: b.created_at, reverse=True)


def authors_for(store: DocumentStore, blogs: List[Blog]) -> Dict[str, User]:
    out: Dict[str, User] = {}
    for uid in {b.created_by for b in blogs}:
        doc = store.get("users", uid)
        if doc:
            out[uid] = User.from_doc(doc)
    return out


def validate_blog(title: str, body: str, status: str = "") -> Tuple[str, str]:
    """Return the cleaned (title, status) or raise ValidationError."""
    t = (title or "").strip()
    if not t:
        raise ValidationError("Title is required")
    if not (body or "").strip():
        raise ValidationError("Body is required")
    st = (status or STATUS_PUBLISHED).strip().lower()
    if st not in STATUSES:
        raise ValidationError(f"Unknown status '{status}'")
    return t, st


def create_blog(
    store: DocumentStore,
    author: User,
    *,
    title: str,
    body: str,
    tags: str = "",
    status: str = "",
    cover_image_url: Optional[str] = None,
) -> Blog:
    t, st = validate_blog(title, body, status)

    blog = Blog(
        id=new_id(),
        title=t,
        body=body,
        created_by=author.id,
        cover_image_url=cover_image_url,
        tags=parse_tags(tags),
        status=st,
    )
    store.insert("blogs", blog.to_doc())
    logger.info("Blog %s created by %s (%s)", blog.id, author.id, blog.status)
    return blog


def get_blog(store: DocumentStore, blog_id: str) -> Blog:
    doc = store.get("blogs", blog_id)
    if doc is None:
        raise NotFoundError("Blog not found")
    return Blog.from_doc(doc)


def can_view(blog: Blog, viewer: Optional[User]) -> bool:
    return blog.is_published or (viewer is not None and viewer.id == blog.created_by)


def read_blog(store: DocumentStore, blog_id: str, viewer: Optional[User] = None) -> Blog:
    """Fetch a blog for display and count the view.

    Every read increments the counter. The increment is read-modify-write
    on the stored document, so concurrent reads can lose increments.
    """
    blog = get_blog(store, blog_id)
    if not can_view(blog, viewer):
        raise NotFoundError("Blog not found")
    blog.views += 1
    store.save("blogs", blog.to_doc())
    return blog


def toggle_like(store: DocumentStore, blog_id: str, user: User) -> LikeResult:
    blog = get_blog(store, blog_id)
    if not can_view(blog, user):
        raise NotFoundError("Blog not found")
    liked = user.id not in blog.likes
    if liked:
        blog.likes.append(user.id)
    else:
        blog.likes = [u for u in blog.likes if u != user.id]
    store.save("blogs", blog.to_doc())
    return LikeResult(likes=blog.like_count, liked=liked)


def add_comment(store: DocumentStore, blog_id: str, author: User, content: str) -> Comment:
    blog = get_blog(store, blog_id)
    if not can_view(blog, author):
        raise NotFoundError("Blog not found")
    text = (content or "").strip()
    if not text:
        raise ValidationError("Comment cannot be empty")
    if len(text) > COMMENT_MAX_LENGTH:
        raise ValidationError(f"Comment must be at most {COMMENT_MAX_LENGTH} characters")
    comment = Comment(id=new_id(), content=text, blog_id=blog.id, created_by=author.id)
    store.insert("comments", comment.to_doc())
    return comment


def list_comments(store: DocumentStore, blog_id: str) -> List[Comment]:
    docs = store.find("comments", lambda d: d.get("blog_id") == blog_id)
    comments = [Comment.from_doc(d) for d in docs]
    return sorted(comments, key=lambda c: c.created_at, reverse=True)


def related_blogs(store: DocumentStore, blog: Blog, limit: int = RELATED_LIMIT) -> List[Blog]:
    """Published blogs sharing a tag or the author with ``blog``."""
    tags = {t.lower() for t in blog.tags}

    def _match(d: dict) -> bool:
        if d.get("id") == blog.id or d.get("status") != STATUS_PUBLISHED:
            return False
        if d.get("created_by") == blog.created_by:
            return True
        return bool(tags & {str(t).lower() for t in (d.get("tags") or [])})

    found = [Blog.from_doc(d) for d in store.find("blogs", _match)]
    return _newest_first(found)[:limit]


def _matches_query(blog: Blog, q: str) -> bool:
    ql = q.lower()
    return ql in blog.title.lower() or ql in blog.body.lower() or any(ql in t.lower() for t in blog.tags)


def list_feed(store: DocumentStore, *, page: int = 1, page_size: int = 9, q: str = "", tag: str = "") -> FeedPage:
    """Published blogs, newest first, filtered by search text and tag."""
    q = (q or "").strip()
    tag = (tag or "").strip()
    blogs = [Blog.from_doc(d) for d in store.find("blogs", lambda d: d.get("status") == STATUS_PUBLISHED)]
    if q:
        blogs = [b for b in blogs if _matches_query(b, q)]
    if tag:
        blogs = [b for b in blogs if tag.lower() in {t.lower() for t in b.tags}]

    total = len(blogs)
    size = max(1, int(page_size))
    pages = max(1, math.ceil(total / size))
    page = min(max(1, int(page or 1)), pages)
    start = (page - 1) * size
    chunk = _newest_first(blogs)[start:start + size]
    return FeedPage(blogs=chunk, page=page, pages=pages, total=total, q=q, tag=tag, authors=authors_for(store, chunk))


def list_user_blogs(store: DocumentStore, user_id: str, *, include_drafts: bool = False) -> List[Blog]:
    def _match(d: dict) -> bool:
        return d.get("created_by") == user_id and (include_drafts or d.get("status") == STATUS_PUBLISHED)

    return _newest_first([Blog.from_doc(d) for d in store.find("blogs", _match)])
