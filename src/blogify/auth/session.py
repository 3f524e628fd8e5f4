# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Optional

from itsdangerous import BadData, URLSafeTimedSerializer

DEFAULT_MAX_AGE_SECONDS = 24 * 60 * 60  # 24 hours


class TokenService:
    """Stateless session tokens.

    A token is the user id signed together with its issue time. Nothing is
    kept server-side: a token is valid while its signature matches the
    current secret and it is younger than ``max_age``.
    """

    def __init__(self, secret: str, *, salt: str = "blogify.session.v1", max_age: int = DEFAULT_MAX_AGE_SECONDS):
        if not secret:
            raise RuntimeError("Missing SECRET_KEY")
        self.max_age = max_age
        self._serializer = URLSafeTimedSerializer(secret_key=secret, salt=salt)

    def issue(self, user_id: str) -> str:
        uid = str(user_id or "").strip()
        if not uid:
            raise ValueError("Cannot issue a token without a user id")
        return self._serializer.dumps({"uid": uid})

    def verify(self, token: Optional[str]) -> Optional[str]:
        """Return the user id carried by a valid token, else None.

        Malformed, tampered, expired and foreign-secret tokens are all
        reported the same way.
        """
        if not token:
            return None
        try:
            data = self._serializer.loads(token, max_age=self.max_age)
        except BadData:
            return None
        if not isinstance(data, dict):
            return None
        uid = str(data.get("uid") or "").strip()
        return uid or None
