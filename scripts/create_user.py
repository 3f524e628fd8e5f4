#!/usr/bin/env python3
from __future__ import annotations

from getpass import getpass

from blogify.config import Settings
from blogify.core.models import ROLES, ROLE_USER
from blogify.errors import ValidationError
from blogify.infra.store import DocumentStore
from blogify.services.user_service import signup


def main() -> None:
    settings = Settings.from_env()

    full_name = input("Full name: ").strip()
    email = input("Email: ").strip()
    role = (input("Role [USER/ADMIN]: ").strip().upper() or ROLE_USER)
    if role not in ROLES:
        raise SystemExit(f"Unknown role '{role}'")

    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")

    with DocumentStore(settings.data_dir, timeout=settings.store_timeout) as store:
        try:
            user = signup(store, full_name=full_name, email=email, password=pw1, role=role)
        except ValidationError as exc:
            raise SystemExit(exc.message)
    print(f"OK -> {user.email} ({user.role}) in {settings.data_dir}")


if __name__ == "__main__":
    main()
