# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Repository abstraction — protocol-based data access layer.

Defines ``RepositoryProtocol`` for site-registry and credential storage
and ``InMemoryRepository`` for tests and ephemeral hosts.
``SqliteRepository`` in ``repository_sqlite.py`` is the durable backend.

Storage contract: point lookup by page id, point lookup by
(domain, username), full scan for similarity, insert, field-level update,
delete.  ``insert_site`` is insert-or-fetch on ``page_id`` so concurrent
creators of the same page converge on one row.
"""

from __future__ import annotations

import dataclasses
import itertools
import time
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from .errors import StorageError

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Site:
    """A remembered page/site with a display name."""

    name: str
    page_id: str
    signature: str
    url: str | None = None
    domain: str | None = None
    is_user_named: bool = False
    created_at: float = field(default_factory=time.time)
    last_used: float = field(default_factory=time.time)
    id: int | None = None


@dataclass(frozen=True, slots=True)
class Credential:
    """A saved login.  Logically unique on (domain, username)."""

    domain: str
    url: str
    username: str
    password: str = field(repr=False)
    title: str | None = None
    last_used: float = field(default_factory=time.time)
    created_at: float = field(default_factory=time.time)
    id: int | None = None


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class RepositoryProtocol(Protocol):
    """Interface for persistent storage — in-memory or SQLite."""

    async def get_site(self, site_id: int) -> Site | None: ...

    async def get_site_by_page_id(self, page_id: str) -> Site | None: ...

    async def list_sites(self) -> list[Site]: ...

    async def insert_site(self, site: Site) -> Site: ...

    async def update_site(self, site: Site) -> bool: ...

    async def touch_site(self, site_id: int, timestamp: float) -> bool: ...

    async def rename_site(self, site_id: int, name: str) -> bool: ...

    async def delete_site(self, site_id: int) -> bool: ...

    async def find_credential(self, domain: str, username: str) -> Credential | None: ...

    async def credentials_for_domain(self, domain: str) -> list[Credential]: ...

    async def list_credentials(self) -> list[Credential]: ...

    async def insert_credential(self, credential: Credential) -> Credential: ...

    async def update_credential(self, credential: Credential) -> bool: ...

    async def touch_credential(self, credential_id: int, timestamp: float) -> bool: ...

    async def delete_credential(self, credential_id: int) -> bool: ...

    async def close(self) -> None: ...


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------


class InMemoryRepository:
    """Dict-backed repository.  Not persistent; safe within one event loop."""

    def __init__(self) -> None:
        self._sites: dict[int, Site] = {}
        self._credentials: dict[int, Credential] = {}
        self._site_ids = itertools.count(1)
        self._credential_ids = itertools.count(1)

    # ── Sites ─────────────────────────────────────────────────────

    async def get_site(self, site_id: int) -> Site | None:
        return self._sites.get(site_id)

    async def get_site_by_page_id(self, page_id: str) -> Site | None:
        return next((s for s in self._sites.values() if s.page_id == page_id), None)

    async def list_sites(self) -> list[Site]:
        """All sites, most recently used first."""
        return sorted(self._sites.values(), key=lambda s: s.last_used, reverse=True)

    async def insert_site(self, site: Site) -> Site:
        """Insert ``site``; if its page id is taken, return the existing row."""
        existing = await self.get_site_by_page_id(site.page_id)
        if existing is not None:
            return existing
        stored = dataclasses.replace(site, id=next(self._site_ids))
        self._sites[stored.id] = stored
        return stored

    async def update_site(self, site: Site) -> bool:
        """Replace a stored site.

        Raises:
            StorageError: If another site already holds ``site.page_id``.
        """
        if site.id not in self._sites:
            return False
        holder = await self.get_site_by_page_id(site.page_id)
        if holder is not None and holder.id != site.id:
            raise StorageError(f"page_id {site.page_id!r} already in use", operation="update_site")
        self._sites[site.id] = site
        return True

    async def touch_site(self, site_id: int, timestamp: float) -> bool:
        site = self._sites.get(site_id)
        if site is None:
            return False
        self._sites[site_id] = dataclasses.replace(site, last_used=timestamp)
        return True

    async def rename_site(self, site_id: int, name: str) -> bool:
        site = self._sites.get(site_id)
        if site is None:
            return False
        self._sites[site_id] = dataclasses.replace(site, name=name, is_user_named=True)
        return True

    async def delete_site(self, site_id: int) -> bool:
        return self._sites.pop(site_id, None) is not None

    # ── Credentials ───────────────────────────────────────────────

    async def find_credential(self, domain: str, username: str) -> Credential | None:
        return next(
            (c for c in self._credentials.values() if c.domain == domain and c.username == username),
            None,
        )

    async def credentials_for_domain(self, domain: str) -> list[Credential]:
        """Credentials saved under ``domain``, most recently used first."""
        matches = [c for c in self._credentials.values() if c.domain == domain]
        return sorted(matches, key=lambda c: c.last_used, reverse=True)

    async def list_credentials(self) -> list[Credential]:
        return sorted(self._credentials.values(), key=lambda c: c.last_used, reverse=True)

    async def insert_credential(self, credential: Credential) -> Credential:
        stored = dataclasses.replace(credential, id=next(self._credential_ids))
        self._credentials[stored.id] = stored
        return stored

    async def update_credential(self, credential: Credential) -> bool:
        if credential.id not in self._credentials:
            return False
        self._credentials[credential.id] = credential
        return True

    async def touch_credential(self, credential_id: int, timestamp: float) -> bool:
        cred = self._credentials.get(credential_id)
        if cred is None:
            return False
        self._credentials[credential_id] = dataclasses.replace(cred, last_used=timestamp)
        return True

    async def delete_credential(self, credential_id: int) -> bool:
        return self._credentials.pop(credential_id, None) is not None

    async def close(self) -> None:
        """No-op for in-memory repository."""
