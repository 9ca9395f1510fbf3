# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Fill Map exception hierarchy.

All Fill Map errors inherit from FillMapError, allowing callers to catch
the base class for any failure or specific subclasses for targeted
handling.  Classification and identification never raise; only snapshot
loading and storage operations do.
"""

from __future__ import annotations


class FillMapError(Exception):
    """Base exception for all Fill Map errors."""


class SnapshotError(FillMapError):
    """Snapshot payload could not be parsed into a node tree."""


class StorageError(FillMapError):
    """Persistent store operation failed (I/O error, constraint violation)."""

    def __init__(self, message: str, *, operation: str = "") -> None:
        super().__init__(message)
        self.operation = operation


class SchemaVersionError(StorageError, ValueError):
    """Database was written by a newer schema than this build supports."""

    def __init__(self, found: int, supported: int) -> None:
        super().__init__(
            f"Database schema version {found} is newer than supported version {supported}",
            operation="open",
        )
        self.found = found
        self.supported = supported


class SiteNotFoundError(FillMapError):
    """A site id passed to the registry does not exist."""

    def __init__(self, site_id: int) -> None:
        super().__init__(f"Site {site_id} not found")
        self.site_id = site_id
