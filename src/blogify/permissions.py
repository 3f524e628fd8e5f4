# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

from fastapi import Depends, HTTPException, Request

from blogify.auth.session import TokenService
from blogify.core.models import ROLE_ADMIN, User
from blogify.errors import StoreUnavailableError
from blogify.infra.store import DocumentStore
from blogify.services.user_service import get_user

ROLE_ORDER = {"USER": 0, "ADMIN": 1}


def _rank(role: str) -> int:
    return ROLE_ORDER.get((role or "USER").strip().upper(), 0)


@dataclass(frozen=True)
class CurrentUser:
    """Identity resolved from the session cookie for one request."""

    user: User

    @property
    def id(self) -> str:
        return self.user.id

    @property
    def role(self) -> str:
        return self.user.role

    @property
    def is_admin(self) -> bool:
        return self.user.role == ROLE_ADMIN


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_tokens(request: Request) -> TokenService:
    return request.app.state.tokens


def resolve_identity(token: Optional[str], *, store: DocumentStore, tokens: TokenService) -> Optional[CurrentUser]:
    """Map a cookie value to an identity.

    No cookie, an invalid token or a token for a user that no longer exists
    all resolve to anonymous (None). Never raises for bad tokens.
    """
    uid = tokens.verify(token)
    if not uid:
        return None
    try:
        u = get_user(store, uid)
    except StoreUnavailableError:
        return None
    if u is None:
        return None
    return CurrentUser(user=u)


def current_user_optional(
    request: Request,
    store: DocumentStore = Depends(get_store),
    tokens: TokenService = Depends(get_tokens),
) -> Optional[CurrentUser]:
    cookie_name = request.app.state.settings.cookie_name
    return resolve_identity(request.cookies.get(cookie_name), store=store, tokens=tokens)


def require_user(request: Request, current: Optional[CurrentUser] = Depends(current_user_optional)) -> CurrentUser:
    if current:
        return current
    next_url = str(request.url.path)
    if request.url.query:
        next_url += "?" + request.url.query
    loc = f"/user/signin?next={quote(next_url, safe='/')}"
    raise HTTPException(status_code=303, headers={"Location": loc})


def require_user_api(current: Optional[CurrentUser] = Depends(current_user_optional)) -> CurrentUser:
    if current:
        return current
    raise HTTPException(status_code=401, detail="Authentication required")


def require_role(min_role: str, *, api: bool = False):
    """Role gate; ``api=True`` answers 401 instead of redirecting anonymous users."""
    base = require_user_api if api else require_user

    def _dep(u: CurrentUser = Depends(base)) -> CurrentUser:
        if _rank(u.role) < _rank(min_role):
            raise HTTPException(status_code=403, detail="Forbidden")
        return u

    return _dep
