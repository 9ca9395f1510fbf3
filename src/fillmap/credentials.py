# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Credential lookup, save, and fill-dataset construction.

Credentials are keyed by the resolved site key: the real domain when the
page has one, else the registry site's page id.  (domain, username) is
unique; ``CredentialService.save`` looks the pair up before choosing
insert, update or touch.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum

from . import AutofillId, ClassifiedField, FieldRole, PageInfo
from .repository import Credential, RepositoryProtocol

logger = logging.getLogger(__name__)

# Raw roles that carry the login on sites with special handling.
SPECIAL_USERNAME_ROLES: tuple[str, ...] = ("off", FieldRole.USERNAME)
SPECIAL_PASSWORD_ROLES: tuple[str, ...] = ("new-password", FieldRole.PASSWORD)

_USER_ROLE_MARKERS: tuple[str, ...] = ("username", "email", "user", "login")
_PASSWORD_ROLE_MARKERS: tuple[str, ...] = ("password", "pass")

_FILL_USERNAME_ROLES = frozenset({FieldRole.USERNAME, FieldRole.EMAIL})


class SaveOutcome(StrEnum):
    INSERTED = "inserted"
    UPDATED = "updated"
    TOUCHED = "touched"


@dataclass(frozen=True, slots=True)
class SubmittedCredential:
    """A username/password pair read from a submitted form."""

    username: str
    password: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class FillDataset:
    """One fill suggestion: values keyed by field handle."""

    credential: Credential
    values: dict[AutofillId, str]

    @property
    def label(self) -> str:
        return f"{self.credential.username} - {self.credential.title}"


# ---------------------------------------------------------------------------
# Save-side extraction
# ---------------------------------------------------------------------------


def _role_values(fields: list[ClassifiedField], values: Mapping[AutofillId, str]) -> dict[str, str]:
    """role → submitted value; later fields win, blanks are skipped."""
    by_role: dict[str, str] = {}
    for f in fields:
        value = values.get(f.field_handle, "")
        if value.strip():
            by_role[f.role] = value
    return by_role


def extract_submitted_credentials(
    fields: list[ClassifiedField],
    values: Mapping[AutofillId, str],
    *,
    special_handling: bool = False,
) -> list[SubmittedCredential]:
    """Pair submitted usernames with passwords, one entry per distinct username."""
    by_role = _role_values(fields, values)

    pairs: list[SubmittedCredential] = []
    if special_handling:
        username = next((by_role[r] for r in SPECIAL_USERNAME_ROLES if r in by_role), "")
        password = next((by_role[r] for r in SPECIAL_PASSWORD_ROLES if r in by_role), "")
        if username.strip() and password.strip():
            pairs.append(SubmittedCredential(username, password))
    else:
        users = [v for k, v in by_role.items() if any(m in k for m in _USER_ROLE_MARKERS)]
        passwords = [v for k, v in by_role.items() if any(m in k for m in _PASSWORD_ROLE_MARKERS)]
        pairs = [SubmittedCredential(u, p) for u in users for p in passwords]

    seen: set[str] = set()
    unique: list[SubmittedCredential] = []
    for pair in pairs:
        if pair.username in seen:
            continue
        seen.add(pair.username)
        unique.append(pair)
    return unique


def save_trigger_fields(fields: list[ClassifiedField]) -> list[AutofillId]:
    """Handles the host should watch for a form submit: password, else username, else all."""
    passwords = [f.field_handle for f in fields if f.role == FieldRole.PASSWORD]
    if passwords:
        return passwords
    usernames = [f.field_handle for f in fields if f.role in _FILL_USERNAME_ROLES]
    if usernames:
        return usernames
    return [f.field_handle for f in fields]


# ---------------------------------------------------------------------------
# Fill-side datasets
# ---------------------------------------------------------------------------


def build_datasets(fields: list[ClassifiedField], credentials: list[Credential]) -> list[FillDataset]:
    datasets: list[FillDataset] = []
    for cred in credentials:
        values: dict[AutofillId, str] = {}
        for f in fields:
            if f.role in _FILL_USERNAME_ROLES:
                values[f.field_handle] = cred.username
            elif f.role == FieldRole.PASSWORD:
                values[f.field_handle] = cred.password
        if values:
            datasets.append(FillDataset(credential=cred, values=values))
        else:
            logger.debug("No fillable field for credential %r", cred.username)
    return datasets


# ---------------------------------------------------------------------------
# CredentialService
# ---------------------------------------------------------------------------


class CredentialService:
    """Lookup and insert/update/touch of credentials in a ``RepositoryProtocol``."""

    def __init__(self, repository: RepositoryProtocol, *, clock: Callable[[], float] = time.time) -> None:
        self._repository = repository
        self._clock = clock

    async def lookup(self, key: str) -> list[Credential]:
        """Credentials saved under ``key``, most recently used first."""
        credentials = await self._repository.credentials_for_domain(key)
        logger.debug("Found %d credential(s) for %s", len(credentials), key)
        return credentials

    async def save(
        self,
        key: str,
        page_info: PageInfo,
        username: str,
        password: str,
        *,
        title: str | None = None,
    ) -> tuple[SaveOutcome, Credential]:
        now = self._clock()
        existing = await self._repository.find_credential(key, username)

        if existing is None:
            stored = await self._repository.insert_credential(
                Credential(
                    domain=key,
                    url=page_info.url or f"https://{key}",
                    username=username,
                    password=password,
                    title=title,
                    last_used=now,
                    created_at=now,
                )
            )
            logger.info("Saved new credential for %r at %s", username, key)
            return SaveOutcome.INSERTED, stored

        if existing.password != password:
            updated = dataclasses.replace(
                existing,
                password=password,
                url=page_info.url or existing.url,
                last_used=now,
            )
            await self._repository.update_credential(updated)
            logger.info("Updated password for %r at %s", username, key)
            return SaveOutcome.UPDATED, updated

        await self._repository.touch_credential(existing.id, now)
        logger.debug("Credential for %r at %s unchanged; last_used refreshed", username, key)
        return SaveOutcome.TOUCHED, dataclasses.replace(existing, last_used=now)
