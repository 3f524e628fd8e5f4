# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Aggregate figures over the blog collection (pandas)."""

from __future__ import annotations

import io
from typing import Any, Dict

import pandas as pd
from fastapi.responses import StreamingResponse

from blogify.core.models import STATUS_DRAFT, STATUS_PUBLISHED
from blogify.infra.store import DocumentStore

BLOG_COLUMNS = ["id", "title", "created_by", "status", "tags", "views", "likes", "created_at"]


def blogs_frame(store: DocumentStore) -> pd.DataFrame:
    docs = store.find("blogs")
    if not docs:
        return pd.DataFrame(columns=BLOG_COLUMNS)
    df = pd.DataFrame(docs)
    for col in BLOG_COLUMNS:
        if col not in df.columns:
            df[col] = None
    df["tags"] = df["tags"].map(lambda v: list(v) if isinstance(v, list) else [])
    df["likes"] = df["likes"].map(lambda v: len(v) if isinstance(v, list) else 0)
    df["views"] = pd.to_numeric(df["views"], errors="coerce").fillna(0).astype(int)
    return df[BLOG_COLUMNS]


def compute_stats(store: DocumentStore, *, top_tags: int = 10) -> Dict[str, Any]:
    df = blogs_frame(store)
    tag_counts = (
        df["tags"].explode().dropna().map(str).str.strip().str.lower().value_counts().head(top_tags)
        if not df.empty
        else pd.Series(dtype=int)
    )
    return {
        "users": store.count("users"),
        "blogs": int(len(df)),
        "published": int((df["status"] == STATUS_PUBLISHED).sum()),
        "drafts": int((df["status"] == STATUS_DRAFT).sum()),
        "comments": store.count("comments"),
        "views": int(df["views"].sum()),
        "likes": int(df["likes"].sum()),
        "top_tags": [{"tag": str(t), "count": int(c)} for t, c in tag_counts.items()],
    }


def blogs_csv_stream(store: DocumentStore) -> StreamingResponse:
    """Stream the blog collection as CSV without writing to disk."""
    df = blogs_frame(store).copy()
    df["tags"] = df["tags"].map(lambda v: ", ".join(v))
    buf = io.StringIO()
    df.to_csv(buf, index=False)
    buf.seek(0)
    return StreamingResponse(
        iter([buf.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="blogs.csv"'},
    )
