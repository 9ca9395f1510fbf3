# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""SQLite-backed repository — persistent storage for sites and credentials.

Uses ``aiosqlite`` with a single long-lived connection.  WAL journal
mode enables concurrent reads with serialized writes.  Schema versioned via ``PRAGMA user_version``.

Each write commits on success and rolls back on failure; driver errors
surface as ``StorageError``.  ``sites.page_id`` carries a UNIQUE
constraint and ``insert_site`` is insert-or-fetch on it.

Dependencies: repository.py (Site, Credential, RepositoryProtocol),
              errors.py.
"""

from __future__ import annotations

import dataclasses
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress
from pathlib import Path

import aiosqlite

from .errors import SchemaVersionError, StorageError
from .repository import Credential, Site

_SCHEMA_VERSION = 1


# ---------------------------------------------------------------------------
# Row helpers
# ---------------------------------------------------------------------------

_SITE_COLUMNS = "id, name, page_id, signature, url, domain, is_user_named, created_at, last_used"
_CREDENTIAL_COLUMNS = "id, domain, url, username, password, title, last_used, created_at"


def _row_to_site(row: aiosqlite.Row) -> Site:
    """Convert a positional row to a ``Site``."""
    return Site(
        id=row[0],
        name=row[1],
        page_id=row[2],
        signature=row[3],
        url=row[4],
        domain=row[5],
        is_user_named=bool(row[6]),
        created_at=row[7],
        last_used=row[8],
    )


def _row_to_credential(row: aiosqlite.Row) -> Credential:
    return Credential(
        id=row[0],
        domain=row[1],
        url=row[2],
        username=row[3],
        password=row[4],
        title=row[5],
        last_used=row[6],
        created_at=row[7],
    )


# ---------------------------------------------------------------------------
# Schema DDL
# ---------------------------------------------------------------------------

_CREATE_SITES = """
CREATE TABLE IF NOT EXISTS sites (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    name          TEXT NOT NULL,
    page_id       TEXT NOT NULL UNIQUE,
    signature     TEXT NOT NULL DEFAULT '',
    url           TEXT,
    domain        TEXT,
    is_user_named INTEGER NOT NULL DEFAULT 0,
    created_at    REAL NOT NULL,
    last_used     REAL NOT NULL
)
"""

_CREATE_CREDENTIALS = """
CREATE TABLE IF NOT EXISTS credentials (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    domain     TEXT NOT NULL,
    url        TEXT NOT NULL,
    username   TEXT NOT NULL,
    password   TEXT NOT NULL,
    title      TEXT,
    last_used  REAL NOT NULL,
    created_at REAL NOT NULL
)
"""

_CREATE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_sites_last_used ON sites(last_used)",
    "CREATE INDEX IF NOT EXISTS idx_credentials_domain_username ON credentials(domain, username)",
]


# ---------------------------------------------------------------------------
# SqliteRepository
# ---------------------------------------------------------------------------


class SqliteRepository:
    """SQLite-backed repository implementing ``RepositoryProtocol``.

    Use the ``create()`` async classmethod factory — never instantiate directly.
    """

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    @classmethod
    async def create(cls, db_path: str | Path) -> SqliteRepository:
        """Open (or create) a SQLite database and initialise the schema.

        Resolves ``~`` and creates parent directories automatically.

        Raises:
            SchemaVersionError: If the existing database has a newer schema version.
        """
        path = Path(db_path).expanduser().resolve()
        path.parent.mkdir(parents=True, exist_ok=True)

        db = await aiosqlite.connect(str(path))
        try:
            await db.execute("PRAGMA journal_mode = WAL")

            cursor = await db.execute("PRAGMA user_version")
            row = await cursor.fetchone()
            current_version = row[0] if row else 0

            if current_version > _SCHEMA_VERSION:
                raise SchemaVersionError(current_version, _SCHEMA_VERSION)

            if current_version < _SCHEMA_VERSION:
                await db.execute(_CREATE_SITES)
                await db.execute(_CREATE_CREDENTIALS)
                for idx_sql in _CREATE_INDEXES:
                    await db.execute(idx_sql)
                await db.execute(f"PRAGMA user_version = {_SCHEMA_VERSION}")
                await db.commit()
        except BaseException:
            await db.close()
            raise

        return cls(db)

    @asynccontextmanager
    async def _guard(self, operation: str) -> AsyncIterator[None]:
        """Translate driver errors into ``StorageError``, rolling back pending writes."""
        try:
            yield
        except aiosqlite.Error as exc:
            with suppress(aiosqlite.Error):
                await self._db.rollback()
            raise StorageError(f"{operation} failed: {exc}", operation=operation) from exc

    async def _fetch_sites(self, where: str = "", params: tuple = ()) -> list[Site]:
        cursor = await self._db.execute(
            f"SELECT {_SITE_COLUMNS} FROM sites {where} ORDER BY last_used DESC",
            params,
        )
        return [_row_to_site(r) for r in await cursor.fetchall()]

    async def _fetch_credentials(self, where: str = "", params: tuple = ()) -> list[Credential]:
        cursor = await self._db.execute(
            f"SELECT {_CREDENTIAL_COLUMNS} FROM credentials {where} ORDER BY last_used DESC",
            params,
        )
        return [_row_to_credential(r) for r in await cursor.fetchall()]

    # ── Sites ─────────────────────────────────────────────────────

    async def get_site(self, site_id: int) -> Site | None:
        async with self._guard("get_site"):
            rows = await self._fetch_sites("WHERE id = ?", (site_id,))
        return rows[0] if rows else None

    async def get_site_by_page_id(self, page_id: str) -> Site | None:
        """Look up a site by its page id. Returns ``None`` if not found."""
        async with self._guard("get_site_by_page_id"):
            rows = await self._fetch_sites("WHERE page_id = ?", (page_id,))
        return rows[0] if rows else None

    async def list_sites(self) -> list[Site]:
        """Return all sites, most recently used first."""
        async with self._guard("list_sites"):
            return await self._fetch_sites()

    async def insert_site(self, site: Site) -> Site:
        """Insert ``site``, or return the stored row if its page id already exists."""
        async with self._guard("insert_site"):
            cursor = await self._db.execute(
                "INSERT INTO sites "
                "(name, page_id, signature, url, domain, is_user_named, created_at, last_used) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(page_id) DO NOTHING",
                (
                    site.name,
                    site.page_id,
                    site.signature,
                    site.url,
                    site.domain,
                    int(site.is_user_named),
                    site.created_at,
                    site.last_used,
                ),
            )
            await self._db.commit()
            if cursor.rowcount > 0:
                return dataclasses.replace(site, id=cursor.lastrowid)
            rows = await self._fetch_sites("WHERE page_id = ?", (site.page_id,))
        return rows[0]

    async def update_site(self, site: Site) -> bool:
        async with self._guard("update_site"):
            cursor = await self._db.execute(
                "UPDATE sites SET name = ?, page_id = ?, signature = ?, url = ?, domain = ?, "
                "is_user_named = ?, last_used = ? WHERE id = ?",
                (
                    site.name,
                    site.page_id,
                    site.signature,
                    site.url,
                    site.domain,
                    int(site.is_user_named),
                    site.last_used,
                    site.id,
                ),
            )
            await self._db.commit()
        return cursor.rowcount > 0

    async def touch_site(self, site_id: int, timestamp: float) -> bool:
        async with self._guard("touch_site"):
            cursor = await self._db.execute("UPDATE sites SET last_used = ? WHERE id = ?", (timestamp, site_id))
            await self._db.commit()
        return cursor.rowcount > 0

    async def rename_site(self, site_id: int, name: str) -> bool:
        """Set a user-chosen name. Returns ``True`` if the site exists."""
        async with self._guard("rename_site"):
            cursor = await self._db.execute(
                "UPDATE sites SET name = ?, is_user_named = 1 WHERE id = ?",
                (name, site_id),
            )
            await self._db.commit()
        return cursor.rowcount > 0

    async def delete_site(self, site_id: int) -> bool:
        async with self._guard("delete_site"):
            cursor = await self._db.execute("DELETE FROM sites WHERE id = ?", (site_id,))
            await self._db.commit()
        return cursor.rowcount > 0

    # ── Credentials ───────────────────────────────────────────────

    async def find_credential(self, domain: str, username: str) -> Credential | None:
        async with self._guard("find_credential"):
            rows = await self._fetch_credentials("WHERE domain = ? AND username = ?", (domain, username))
        return rows[0] if rows else None

    async def credentials_for_domain(self, domain: str) -> list[Credential]:
        async with self._guard("credentials_for_domain"):
            return await self._fetch_credentials("WHERE domain = ?", (domain,))

    async def list_credentials(self) -> list[Credential]:
        async with self._guard("list_credentials"):
            return await self._fetch_credentials()

    async def insert_credential(self, credential: Credential) -> Credential:
        async with self._guard("insert_credential"):
            cursor = await self._db.execute(
                "INSERT INTO credentials (domain, url, username, password, title, last_used, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    credential.domain,
                    credential.url,
                    credential.username,
                    credential.password,
                    credential.title,
                    credential.last_used,
                    credential.created_at,
                ),
            )
            await self._db.commit()
        return dataclasses.replace(credential, id=cursor.lastrowid)

    async def update_credential(self, credential: Credential) -> bool:
        async with self._guard("update_credential"):
            cursor = await self._db.execute(
                "UPDATE credentials SET domain = ?, url = ?, username = ?, password = ?, title = ?, "
                "last_used = ? WHERE id = ?",
                (
                    credential.domain,
                    credential.url,
                    credential.username,
                    credential.password,
                    credential.title,
                    credential.last_used,
                    credential.id,
                ),
            )
            await self._db.commit()
        return cursor.rowcount > 0

    async def touch_credential(self, credential_id: int, timestamp: float) -> bool:
        async with self._guard("touch_credential"):
            cursor = await self._db.execute(
                "UPDATE credentials SET last_used = ? WHERE id = ?",
                (timestamp, credential_id),
            )
            await self._db.commit()
        return cursor.rowcount > 0

    async def delete_credential(self, credential_id: int) -> bool:
        async with self._guard("delete_credential"):
            cursor = await self._db.execute("DELETE FROM credentials WHERE id = ?", (credential_id,))
            await self._db.commit()
        return cursor.rowcount > 0

    async def close(self) -> None:
        """Close the database connection. Idempotent."""
        with suppress(Exception):
            await self._db.close()
