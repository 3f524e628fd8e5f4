# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEV_SECRET = "blogify-dev-secret-change-me"


def env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "y"}


@dataclass(frozen=True)
class Settings:
    """Runtime configuration, read from the environment by ``from_env``."""

    data_dir: Path = Path("data")
    env: str = "development"
    secret_key: str = DEV_SECRET
    session_salt: str = "blogify.session.v1"
    session_max_age: int = 24 * 60 * 60
    cookie_name: str = "token"
    uploads_dir: Optional[Path] = None
    max_upload_bytes: int = 5 * 1024 * 1024
    page_size: int = 9
    store_timeout: float = 5.0
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        # frozen: assign derived defaults through object.__setattr__
        object.__setattr__(self, "data_dir", Path(self.data_dir).resolve())
        if self.uploads_dir is None:
            object.__setattr__(self, "uploads_dir", self.data_dir / "uploads")
        else:
            object.__setattr__(self, "uploads_dir", Path(self.uploads_dir).resolve())
        if self.is_production and (not self.secret_key or self.secret_key == DEV_SECRET):
            raise RuntimeError("SECRET_KEY must be set in production")

    @property
    def is_production(self) -> bool:
        return self.env.strip().lower() == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        env = os.getenv("BLOGIFY_ENV", "development")
        secret = os.getenv("SECRET_KEY") or os.getenv("BLOGIFY_SECRET_KEY") or ""
        if not secret and env.strip().lower() != "production":
            secret = DEV_SECRET
        uploads = os.getenv("BLOGIFY_UPLOADS_DIR")
        return cls(
            data_dir=Path(os.getenv("BLOGIFY_DATA_DIR", "data")),
            env=env,
            secret_key=secret,
            session_salt=os.getenv("BLOGIFY_SESSION_SALT", "blogify.session.v1"),
            session_max_age=int(os.getenv("BLOGIFY_SESSION_MAX_AGE", str(24 * 60 * 60))),
            uploads_dir=Path(uploads) if uploads else None,
            max_upload_bytes=int(os.getenv("BLOGIFY_MAX_UPLOAD_BYTES", str(5 * 1024 * 1024))),
            page_size=int(os.getenv("BLOGIFY_PAGE_SIZE", "9")),
            store_timeout=float(os.getenv("BLOGIFY_STORE_TIMEOUT", "5")),
            log_level=os.getenv("BLOGIFY_LOG_LEVEL", "INFO"),
        )

    def cookie_settings(self) -> dict:
        return {"httponly": True, "samesite": "lax", "secure": self.is_production}
