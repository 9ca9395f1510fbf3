# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Localized detection keywords for field roles, page labels and titles.

All languages are merged into flat tuples of pure literal strings (no regex
metacharacters), matched as lowercase substrings or exact values.

Supported languages: en, es.  Adding a language means appending its terms
to the tuples below; there is no per-locale lookup.
"""

from __future__ import annotations

from . import FieldRole

# ---------------------------------------------------------------------------
# Field role keywords: substring match on node text / placeholder
# ---------------------------------------------------------------------------

EMAIL_TERMS: tuple[str, ...] = (
    # en
    "email",
    # es
    "correo",
)

USERNAME_TERMS: tuple[str, ...] = (
    # en
    "user",
    # es
    "usuario",
)

PASSWORD_TERMS: tuple[str, ...] = (
    # en
    "pass",
    # es
    "contraseña",
)

PHONE_TERMS: tuple[str, ...] = (
    # en
    "phone",
    # es
    "teléfono",
    "telefono",
)

NAME_TERMS: tuple[str, ...] = (
    # en
    "name",
    # es
    "nombre",
)

# Evaluation order matters: first match wins.
TEXT_ROLE_TERMS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (FieldRole.EMAIL, EMAIL_TERMS),
    (FieldRole.USERNAME, USERNAME_TERMS),
    (FieldRole.PASSWORD, PASSWORD_TERMS),
    (FieldRole.PHONE, PHONE_TERMS),
    (FieldRole.NAME, NAME_TERMS),
)

# ---------------------------------------------------------------------------
# Stable page labels: exact (lowercased, trimmed) match → signature token
# ---------------------------------------------------------------------------

STABLE_LABELS: dict[str, str] = {
    # en
    "username": "label:username",
    "password": "label:password",
    "email": "label:email",
    "login": "label:login",
    "sign in": "label:signin",
    # es
    "usuario": "label:usuario",
    "contraseña": "label:contraseña",
    "correo": "label:correo",
    "iniciar sesión": "label:iniciar",
}

STABLE_NAME_ATTRS: frozenset[str] = frozenset({"username", "user", "email", "password", "pass"})
STABLE_TYPE_ATTRS: frozenset[str] = frozenset({"email", "password", "text"})

# ---------------------------------------------------------------------------
# Title heuristics
# ---------------------------------------------------------------------------

# Exact (case-insensitive) matches rejected as page titles.
GENERIC_UI_TERMS: tuple[str, ...] = (
    "preview",
    "loading",
    "submit",
    "button",
    "click",
    "here",
    "username",
    "password",
    "email",
    "login",
    "signin",
    "signup",
    "register",
    "forgot",
    "remember",
    "back",
    "next",
    "continue",
    "cancel",
    "close",
    "ok",
    "yes",
    "no",
    "save",
    "delete",
    "edit",
    "update",
    "refresh",
    "reload",
    "search",
    "filter",
)

# Substring matches that mark browser chrome rather than page content.
BROWSER_UI_TERMS: tuple[str, ...] = (
    "chrome",
    "firefox",
    "safari",
    "edge",
    "browser",
    "tab",
    "window",
    "bookmark",
    "history",
    "settings",
    "menu",
    "toolbar",
    "address",
    "url",
    "search",
)

# Substring matches that reward a title candidate.
TITLE_BONUS_TERMS: tuple[str, ...] = (
    "login",
    "sign",
    "home",
    "dashboard",
    "app",
    "site",
    "page",
    "portal",
)

FALLBACK_TITLE = "Website"
