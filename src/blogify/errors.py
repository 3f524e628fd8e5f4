# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Exception taxonomy shared by services and route handlers."""

from __future__ import annotations

from typing import Optional


class BlogifyError(Exception):
    status_code: int = 500
    code: str = "internal_error"
    message: str = "Something went wrong. Please try again."

    def __init__(self, message: Optional[str] = None) -> None:
        if message:
            self.message = message
        super().__init__(self.message)

    def to_payload(self) -> dict:
        return {"error": self.message, "code": self.code}


class ValidationError(BlogifyError):
    status_code = 400
    code = "validation_error"
    message = "Invalid input"


class DuplicateEmailError(ValidationError):
    code = "duplicate_email"
    message = "User with this email already exists"


class UploadError(ValidationError):
    code = "upload_error"
    message = "Only image files are allowed"


class AuthenticationError(BlogifyError):
    status_code = 401
    code = "auth_failed"
    message = "Invalid email or password"


class ForbiddenError(BlogifyError):
    status_code = 403
    code = "forbidden"
    message = "Forbidden"


class NotFoundError(BlogifyError):
    status_code = 404
    code = "not_found"
    message = "Not found"


class PasswordHashingError(BlogifyError):
    code = "hashing_failed"
    message = "Error creating account. Please try again."


class StoreUnavailableError(BlogifyError):
    status_code = 503
    code = "store_unavailable"
    message = "Service temporarily unavailable"
