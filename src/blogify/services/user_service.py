# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from typing import Optional, Tuple

from blogify.auth.passwords import hash_password, needs_rehash, verify_password
from blogify.core.models import BIO_MAX_LENGTH, ROLE_USER, ROLES, User
from blogify.core.utils import is_valid_email, new_id, normalize_email, utcnow
from blogify.errors import AuthenticationError, DuplicateEmailError, NotFoundError, ValidationError
from blogify.infra.store import DocumentStore

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

# Verified against when the email is unknown, so both failures cost the same.
_DUMMY_HASH = hash_password("blogify-timing-equaliser")


def validate_signup(full_name: str, email: str, password: str) -> Tuple[str, str]:
    """Check the signup form shape; return the cleaned (full_name, email)."""
    name = (full_name or "").strip()
    if not name:
        raise ValidationError("Full name is required")
    em = normalize_email(email)
    if not is_valid_email(em):
        raise ValidationError("Please enter a valid email address")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return name, em


def signup(store: DocumentStore, *, full_name: str, email: str, password: str, role: str = ROLE_USER) -> User:
    name, em = validate_signup(full_name, email, password)
    if role not in ROLES:
        raise ValidationError(f"Unknown role '{role}'")
    if store.find_user_by_email(em) is not None:
        logger.info("Signup rejected: email already registered")
        raise DuplicateEmailError()

    # Hash before touching the store: a hashing failure leaves nothing behind.
    user = User(id=new_id(), full_name=name, email=em, password_hash=hash_password(password), role=role)
    store.insert("users", user.to_doc())
    logger.info("User %s signed up", user.id)
    return user


def authenticate(store: DocumentStore, email: str, password: str) -> User:
    """Return the user matching the credentials.

    Unknown email, wrong password and empty password raise the same
    AuthenticationError.
    """
    if not password:
        raise AuthenticationError()
    doc = store.find_user_by_email(email)
    if doc is None:
        verify_password(_DUMMY_HASH, password)
        raise AuthenticationError()
    user = User.from_doc(doc)
    if not verify_password(user.password_hash, password):
        raise AuthenticationError()
    if needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
        user.updated_at = utcnow()
        store.save("users", user.to_doc())
    return user


def get_user(store: DocumentStore, user_id: str) -> Optional[User]:
    doc = store.get("users", user_id)
    return User.from_doc(doc) if doc else None


def require_existing_user(store: DocumentStore, user_id: str) -> User:
    u = get_user(store, user_id)
    if u is None:
        raise NotFoundError("User not found")
    return u


def update_profile(store: DocumentStore, user_id: str, *, full_name: str, bio: str) -> User:
    user = require_existing_user(store, user_id)
    name = (full_name or "").strip()
    if not name:
        raise ValidationError("Full name is required")
    b = (bio or "").strip()
    if len(b) > BIO_MAX_LENGTH:
        raise ValidationError(f"Bio must be at most {BIO_MAX_LENGTH} characters")
    user.full_name = name
    user.bio = b
    user.updated_at = utcnow()
    store.save("users", user.to_doc())
    return user


def toggle_follow(store: DocumentStore, follower_id: str, target_id: str) -> bool:
    """Follow or unfollow ``target_id``. Returns True when now following."""
    if follower_id == target_id:
        raise ValidationError("You cannot follow yourself")
    follower = require_existing_user(store, follower_id)
    target = require_existing_user(store, target_id)

    now_following = target_id not in follower.following
    if now_following:
        follower.following.append(target_id)
        if follower_id not in target.followers:
            target.followers.append(follower_id)
    else:
        follower.following = [u for u in follower.following if u != target_id]
        target.followers = [u for u in target.followers if u != follower_id]

    now = utcnow()
    follower.updated_at = now
    target.updated_at = now
    store.save("users", follower.to_doc())
    store.save("users", target.to_doc())
    return now_following
