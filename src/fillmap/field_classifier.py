# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Autofillable field detection and role assignment.

Each node is first gated by ``is_autofillable`` (any single signal is
enough), then assigned a role by a first-match-wins chain ordered from
most to least reliable:

  a. explicit autofill hint (verbatim)
  b. HTML ``type`` attribute
  c. HTML ``name`` / ``id`` attribute substrings
  d. input-type bit tests
  e. node text / placeholder keywords (localized)
  f. default ``username``

Output order is pre-order document order; fill and save pair values by
this order, so it must stay stable for a given tree.
"""

from __future__ import annotations

import logging

from . import ClassifiedField, FieldRole
from .i18n import TEXT_ROLE_TERMS
from .tree import AssistSnapshot, ViewNode, iter_snapshot_nodes

logger = logging.getLogger(__name__)

# ── Input-type flags (host bitmask) ─────────────────────────────────────

TYPE_CLASS_TEXT = 0x00000001
TYPE_CLASS_NUMBER = 0x00000003
TYPE_TEXT_VARIATION_EMAIL_ADDRESS = 0x00000021
TYPE_TEXT_VARIATION_PASSWORD = 0x00000081

TEXT_INPUT_FLAGS: tuple[int, ...] = (
    TYPE_CLASS_TEXT,
    TYPE_TEXT_VARIATION_EMAIL_ADDRESS,
    TYPE_TEXT_VARIATION_PASSWORD,
    TYPE_CLASS_NUMBER,
)

# Checked in order; a flag matches only when all of its bits are set.
INPUT_TYPE_ROLES: tuple[tuple[int, str], ...] = (
    (TYPE_TEXT_VARIATION_EMAIL_ADDRESS, FieldRole.EMAIL),
    (TYPE_TEXT_VARIATION_PASSWORD, FieldRole.PASSWORD),
    (TYPE_CLASS_NUMBER, FieldRole.PHONE),
)

# ── HTML signals ────────────────────────────────────────────────────────

HTML_INPUT_TYPES = frozenset({"text", "email", "password", "tel"})

HTML_TYPE_ROLES: dict[str, str] = {
    "email": FieldRole.EMAIL,
    "password": FieldRole.PASSWORD,
    "tel": FieldRole.PHONE,
}

EDIT_TEXT_CLASS_MARKERS: tuple[str, ...] = ("edittext", "textinputedittext")

_ATTR_EMAIL = ("email", "mail")
_ATTR_USERNAME = ("user", "login", "usuario", "rut")
_ATTR_PASSWORD = ("pass",)
_ATTR_PHONE = ("phone", "tel")


def _role_from_attribute(value: str) -> str | None:
    if any(k in value for k in _ATTR_EMAIL):
        return FieldRole.EMAIL
    if any(k in value for k in _ATTR_USERNAME):
        return FieldRole.USERNAME
    if any(k in value for k in _ATTR_PASSWORD):
        return FieldRole.PASSWORD
    if any(k in value for k in _ATTR_PHONE):
        return FieldRole.PHONE
    if "name" in value and "user" not in value:
        return FieldRole.NAME
    return None


def _role_from_text(value: str) -> str | None:
    for role, terms in TEXT_ROLE_TERMS:
        if any(t in value for t in terms):
            return role
    return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def is_autofillable(node: ViewNode) -> bool:
    """True when any signal marks ``node`` as a text-entry field."""
    if node.autofill_hints:
        return True

    class_name = (node.class_name or "").lower()
    if any(m in class_name for m in EDIT_TEXT_CLASS_MARKERS):
        return True

    html = node.html_info
    if html is not None and html.tag_lower == "input":
        input_type = (html.get("type") or "").lower()
        if input_type in HTML_INPUT_TYPES:
            return True

    if node.input_type:
        return any(node.input_type & flag for flag in TEXT_INPUT_FLAGS)

    return False


def detect_role(node: ViewNode) -> str:
    """Semantic role for an autofillable node (first matching signal wins)."""
    if node.autofill_hints:
        return node.autofill_hints[0]

    html = node.html_info
    if html is not None:
        html_type = (html.get("type") or "").lower()
        if html_type in HTML_TYPE_ROLES:
            return HTML_TYPE_ROLES[html_type]
        for attr in ("name", "id"):
            value = html.get(attr)
            if value and (role := _role_from_attribute(value.lower())):
                return role

    for flag, role in INPUT_TYPE_ROLES:
        if node.input_type & flag == flag:
            return role

    placeholder = html.get("placeholder") if html is not None else None
    for value in (node.text, node.hint, placeholder):
        if value and (role := _role_from_text(value.lower())):
            return role

    return FieldRole.USERNAME


def classify_node(node: ViewNode) -> ClassifiedField | None:
    if node.autofill_id is None or not is_autofillable(node):
        return None
    return ClassifiedField(field_handle=node.autofill_id, role=detect_role(node), observed_text=node.text)


def classify(snapshot: AssistSnapshot) -> list[ClassifiedField]:
    """All autofillable fields of ``snapshot`` in document order."""
    fields: list[ClassifiedField] = []
    for node in iter_snapshot_nodes(snapshot):
        f = classify_node(node)
        if f is not None:
            fields.append(f)
    logger.debug("Classified %d field(s): %s", len(fields), [f.role for f in fields])
    return fields
