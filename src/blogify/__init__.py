# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Blogify: a small server-rendered blogging application."""

__version__ = "0.1.0"
