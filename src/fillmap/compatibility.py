# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Per-site field-role corrections for sites with non-standard login forms.

A closed, data-driven table keyed by normalized domain.  Adding a site is
a new ``BankConfig`` entry, not new code.  ``enhance_fields`` runs after
generic classification and before fill/save response construction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from . import ClassifiedField, FieldRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BankConfig:
    """Field-name and hint synonyms for one site."""

    domain: str
    name: str
    username_field_names: frozenset[str]
    password_field_names: frozenset[str]
    username_hints: frozenset[str]
    password_hints: frozenset[str]
    has_overlay: bool = False
    requires_special_handling: bool = False


def _chilean_bank(domain: str, name: str) -> BankConfig:
    return BankConfig(
        domain=domain,
        name=name,
        username_field_names=frozenset({"rut", "usuario", "username"}),
        password_field_names=frozenset({"pass", "password", "clave"}),
        username_hints=frozenset({"off", "username", "rut"}),
        password_hints=frozenset({"new-password", "current-password", "password"}),
        has_overlay=True,
        requires_special_handling=True,
    )


BANK_CONFIGS: dict[str, BankConfig] = {
    c.domain: c
    for c in (
        _chilean_bank("bancoestado.cl", "BancoEstado"),
        _chilean_bank("santander.cl", "Banco Santander"),
        _chilean_bank("bci.cl", "Banco BCI"),
        _chilean_bank("bancodechile.cl", "Banco de Chile"),
        _chilean_bank("corpbanca.cl", "CorpBanca"),
        _chilean_bank("bancofalabella.cl", "Banco Falabella"),
    )
}

# Substrings that mark a national-id / user login field.
RUT_INDICATORS: tuple[str, ...] = ("rut", "usuario", "user", "login")
PASSWORD_INDICATORS: tuple[str, ...] = ("pass", "clave", "password", "pwd")


def normalize_domain(domain: str) -> str:
    return domain.lower().removeprefix("www.")


def get_bank_config(domain: str | None) -> BankConfig | None:
    if not domain:
        return None
    return BANK_CONFIGS.get(normalize_domain(domain))


def is_known_bank(domain: str | None) -> bool:
    return get_bank_config(domain) is not None


def requires_special_handling(domain: str | None) -> bool:
    config = get_bank_config(domain)
    return config is not None and config.requires_special_handling


def has_overlay_issues(domain: str | None) -> bool:
    config = get_bank_config(domain)
    return config is not None and config.has_overlay


def display_name(domain: str) -> str:
    config = get_bank_config(domain)
    return config.name if config else domain


def _is_rut_field(f: ClassifiedField) -> bool:
    text = (f.observed_text or "").lower()
    handle = str(f.field_handle).lower()
    return any(i in text or i in handle for i in RUT_INDICATORS)


def _is_password_field(f: ClassifiedField) -> bool:
    role = f.role.lower()
    handle = str(f.field_handle).lower()
    return any(i in role or i in handle for i in PASSWORD_INDICATORS)


def _enhanced_role(config: BankConfig, f: ClassifiedField) -> str:
    if f.role in config.username_hints or "rut" in (f.observed_text or "").lower() or _is_rut_field(f):
        return FieldRole.USERNAME
    if f.role in config.password_hints or "password" in f.role or _is_password_field(f):
        return FieldRole.PASSWORD
    return f.role


def enhance_fields(domain: str | None, fields: list[ClassifiedField]) -> list[ClassifiedField]:
    """Rewrite field roles for a known site; other domains get ``fields`` back unchanged."""
    config = get_bank_config(domain)
    if config is None:
        return fields

    enhanced = [f.with_role(_enhanced_role(config, f)) for f in fields]
    changed = sum(1 for old, new in zip(fields, enhanced, strict=True) if old.role != new.role)
    logger.debug("Applied %s compatibility rules: %d/%d field(s) rewritten", config.name, changed, len(fields))
    return enhanced
