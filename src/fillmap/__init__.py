# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Fill Map: page identification and field classification for autofill hosts.

Turns an assist-structure snapshot (a tree of UI element descriptors) into:
- fields: credential-relevant inputs with a semantic role each
- page: a stable identity (real domain or signature hash) plus a display title
"""

from __future__ import annotations

from dataclasses import dataclass


class FieldRole:
    """Semantic roles assigned to autofillable fields.

    Roles are plain strings so explicit host hints (``"off"``,
    ``"new-password"``) can pass through unchanged.
    """

    USERNAME = "username"
    EMAIL = "emailAddress"
    PASSWORD = "password"
    PHONE = "phone"
    NAME = "name"


@dataclass(frozen=True, slots=True)
class AutofillId:
    """Opaque per-field identity, stable for one page visit."""

    value: str

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, raw: str) -> AutofillId:
        return cls(raw)


@dataclass(frozen=True, slots=True)
class ClassifiedField:
    """A single autofillable field found in the snapshot."""

    field_handle: AutofillId
    role: str  # FieldRole constant or raw passthrough hint
    observed_text: str | None = None

    def with_role(self, role: str) -> ClassifiedField:
        return ClassifiedField(self.field_handle, role, self.observed_text)


@dataclass(frozen=True, slots=True)
class PageInfo:
    """Identity of the page being visited."""

    url: str | None
    domain: str | None
    page_id: str  # real domain or "page_<hash>"
    title: str | None

    @property
    def has_real_domain(self) -> bool:
        return bool(self.domain)
