# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""File-backed document store.

Each collection is a directory and each document a YAML file named after its
id. Documents are loaded into memory on ``open()``; every write replaces a
single document file atomically, which is the only atomicity offered.
"""

from __future__ import annotations

import copy
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional

import yaml

from blogify.core.utils import normalize_email
from blogify.errors import DuplicateEmailError, NotFoundError, StoreUnavailableError

logger = logging.getLogger(__name__)

COLLECTIONS = ("users", "blogs", "comments")

Doc = Dict[str, Any]


class DocumentStore:
    def __init__(self, root: Path, *, timeout: float = 5.0) -> None:
        self.root = Path(root)
        self.timeout = timeout
        self._lock = threading.RLock()
        self._docs: Dict[str, Dict[str, Doc]] = {}
        self._emails: Dict[str, str] = {}
        self._open = False

    # ------------------ lifecycle ------------------

    def open(self) -> "DocumentStore":
        try:
            for name in COLLECTIONS:
                (self.root / name).mkdir(parents=True, exist_ok=True)
            docs = {name: self._load_collection(name) for name in COLLECTIONS}
        except (OSError, yaml.YAMLError) as exc:
            logger.error("Cannot open document store at %s: %s", self.root, exc)
            raise StoreUnavailableError() from exc

        with self._locked():
            self._docs = docs
            self._emails = {
                normalize_email(d.get("email", "")): uid for uid, d in docs["users"].items() if d.get("email")
            }
            self._open = True
        logger.info(
            "Document store opened at %s (%s)",
            self.root,
            ", ".join(f"{k}={len(v)}" for k, v in docs.items()),
        )
        return self

    def close(self) -> None:
        with self._locked():
            self._open = False
            self._docs = {}
            self._emails = {}
        logger.info("Document store closed")

    @property
    def is_open(self) -> bool:
        return self._open

    def __enter__(self) -> "DocumentStore":
        return self.open()

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ------------------ reads ------------------

    def get(self, collection: str, doc_id: str) -> Optional[Doc]:
        with self._locked():
            doc = self._collection(collection).get(str(doc_id or ""))
            return copy.deepcopy(doc) if doc is not None else None

    def find(self, collection: str, predicate: Optional[Callable[[Doc], bool]] = None) -> List[Doc]:
        with self._locked():
            docs = list(self._collection(collection).values())
            if predicate is not None:
                docs = [d for d in docs if predicate(d)]
            return copy.deepcopy(docs)

    def count(self, collection: str) -> int:
        with self._locked():
            return len(self._collection(collection))

    def find_user_by_email(self, email: str) -> Optional[Doc]:
        with self._locked():
            uid = self._emails.get(normalize_email(email))
            if uid is None:
                return None
            return copy.deepcopy(self._collection("users").get(uid))

    # ------------------ writes ------------------

    def insert(self, collection: str, doc: Doc) -> Doc:
        doc_id = str(doc.get("id") or "").strip()
        if not doc_id:
            raise ValueError("Document without id")
        with self._locked():
            docs = self._collection(collection)
            if doc_id in docs:
                raise ValueError(f"Duplicate id '{doc_id}' in {collection}")
            if collection == "users":
                email = normalize_email(doc.get("email", ""))
                if email in self._emails:
                    raise DuplicateEmailError()
                doc = {**doc, "email": email}
            self._write(collection, doc)
            docs[doc_id] = copy.deepcopy(doc)
            if collection == "users":
                self._emails[doc["email"]] = doc_id
        return copy.deepcopy(doc)

    def save(self, collection: str, doc: Doc) -> Doc:
        """Replace an existing document with ``doc`` (last write wins)."""
        doc_id = str(doc.get("id") or "").strip()
        with self._locked():
            docs = self._collection(collection)
            current = docs.get(doc_id)
            if current is None:
                raise NotFoundError(f"No {collection[:-1]} '{doc_id}'")
            if collection == "users":
                old_email = normalize_email(current.get("email", ""))
                new_email = normalize_email(doc.get("email", ""))
                if new_email != old_email and new_email in self._emails:
                    raise DuplicateEmailError()
                doc = {**doc, "email": new_email}
            self._write(collection, doc)
            docs[doc_id] = copy.deepcopy(doc)
            if collection == "users" and old_email != new_email:
                self._emails.pop(old_email, None)
                self._emails[new_email] = doc_id
        return copy.deepcopy(doc)

    # ------------------ internals ------------------

    @contextmanager
    def _locked(self) -> Iterator[None]:
        if not self._lock.acquire(timeout=self.timeout):
            logger.warning("Timed out after %.1fs waiting for the document store", self.timeout)
            raise StoreUnavailableError()
        try:
            yield
        finally:
            self._lock.release()

    def _collection(self, name: str) -> Dict[str, Doc]:
        if name not in COLLECTIONS:
            raise ValueError(f"Unknown collection '{name}'")
        if not self._open:
            raise StoreUnavailableError()
        return self._docs[name]

    def _load_collection(self, name: str) -> Dict[str, Doc]:
        out: Dict[str, Doc] = {}
        for p in sorted((self.root / name).glob("*.yml")):
            raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
            if not isinstance(raw, dict) or not raw.get("id"):
                logger.warning("Skipping malformed document %s", p)
                continue
            out[str(raw["id"])] = raw
        return out

    def _write(self, collection: str, doc: Doc) -> None:
        folder = self.root / collection
        target = folder / f"{doc['id']}.yml"
        try:
            fd, tmp = tempfile.mkstemp(dir=str(folder), prefix=".tmp_", suffix=".yml")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    yaml.safe_dump(doc, fh, sort_keys=False, allow_unicode=True)
                os.replace(tmp, target)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except OSError as exc:
            logger.error("Write to %s failed: %s", target, exc)
            raise StoreUnavailableError() from exc
