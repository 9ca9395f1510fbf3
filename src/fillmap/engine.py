# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Per-visit pipeline: classify → identify → overlay → resolve → fill/save.

``AutofillEngine`` owns its repository and closes it on exit::

    async with await AutofillEngine.open(Settings.from_env()) as engine:
        result = await engine.handle_fill(snapshot)

Classification and identification never raise.  Storage failures are
logged and degrade the visit: fill returns no credentials, save drops
the submission and reports ``error``.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

from . import AutofillId, ClassifiedField, PageInfo
from .compatibility import enhance_fields, requires_special_handling
from .config import Settings
from .credentials import (
    CredentialService,
    FillDataset,
    SaveOutcome,
    build_datasets,
    extract_submitted_credentials,
    save_trigger_fields,
)
from .errors import StorageError
from .field_classifier import classify
from .logging_config import visit_context
from .page_identifier import identify
from .repository import Credential, RepositoryProtocol, Site
from .repository_sqlite import SqliteRepository
from .site_registry import SiteRegistry, SiteResolution, pick_most_recent
from .tree import AssistSnapshot, iter_snapshot_nodes

logger = logging.getLogger(__name__)

SitePolicy = Callable[[SiteResolution], Site]


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class VisitAnalysis:
    fields: list[ClassifiedField]
    page_info: PageInfo


@dataclass(frozen=True, slots=True)
class FillResult:
    """Suggestions for one fill request.  Empty when the page has no fields."""

    page_info: PageInfo | None = None
    key: str | None = None
    site: Site | None = None
    datasets: list[FillDataset] = field(default_factory=list)
    save_fields: list[AutofillId] = field(default_factory=list)
    error: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.save_fields


@dataclass(frozen=True, slots=True)
class SaveResult:
    page_info: PageInfo
    key: str | None = None
    saved: list[tuple[SaveOutcome, Credential]] = field(default_factory=list)
    error: str | None = None


def analyze_snapshot(snapshot: AssistSnapshot) -> VisitAnalysis:
    """Classify fields, identify the page, and apply per-site corrections."""
    fields = classify(snapshot)
    page_info = identify(snapshot)
    fields = enhance_fields(page_info.domain, fields)
    return VisitAnalysis(fields=fields, page_info=page_info)


def submitted_values(snapshot: AssistSnapshot) -> dict[AutofillId, str]:
    """Current ``autofill_value`` of every node that has a handle."""
    return {
        node.autofill_id: node.autofill_value
        for node in iter_snapshot_nodes(snapshot)
        if node.autofill_id is not None and node.autofill_value
    }


# ---------------------------------------------------------------------------
# AutofillEngine
# ---------------------------------------------------------------------------


class AutofillEngine:
    def __init__(
        self,
        repository: RepositoryProtocol,
        settings: Settings | None = None,
        *,
        policy: SitePolicy = pick_most_recent,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings or Settings()
        self._repository = repository
        self._policy = policy
        self.registry = SiteRegistry(repository, threshold=self._settings.similarity_threshold, clock=clock)
        self.credentials = CredentialService(repository, clock=clock)

    @classmethod
    async def open(cls, settings: Settings, **kwargs) -> AutofillEngine:
        """Engine backed by the SQLite database at ``settings.db_path``."""
        repository = await SqliteRepository.create(settings.db_path)
        return cls(repository, settings, **kwargs)

    async def __aenter__(self) -> AutofillEngine:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._repository.close()

    # ── Pipeline stages ───────────────────────────────────────────

    def analyze(self, snapshot: AssistSnapshot) -> VisitAnalysis:
        return analyze_snapshot(snapshot)

    async def resolve_key(self, page_info: PageInfo) -> tuple[str, Site | None]:
        """Credential key for the page: its real domain, else the registry site's page id."""
        if page_info.domain:
            return page_info.domain, None
        site = self._policy(await self.registry.resolve(page_info))
        logger.debug("Using site %r (page_id=%s)", site.name, site.page_id)
        return site.page_id, site

    # ── Host callbacks ────────────────────────────────────────────

    async def handle_fill(self, snapshot: AssistSnapshot) -> FillResult:
        with visit_context(uuid.uuid4().hex[:12], request="fill"):
            analysis = self.analyze(snapshot)
            page_info = analysis.page_info
            if not analysis.fields:
                logger.debug("No autofillable fields on %s", page_info.page_id)
                return FillResult(page_info=page_info)

            save_fields = save_trigger_fields(analysis.fields)
            try:
                key, site = await self.resolve_key(page_info)
                credentials = await self.credentials.lookup(key)
            except StorageError as exc:
                logger.warning("Credential lookup failed for %s: %s", page_info.page_id, exc)
                return FillResult(page_info=page_info, save_fields=save_fields, error=str(exc))

            datasets = build_datasets(analysis.fields, credentials)
            logger.info("Fill for %s: %d dataset(s)", key, len(datasets))
            return FillResult(
                page_info=page_info,
                key=key,
                site=site,
                datasets=datasets,
                save_fields=save_fields,
            )

    async def handle_save(self, snapshot: AssistSnapshot) -> SaveResult:
        with visit_context(uuid.uuid4().hex[:12], request="save"):
            analysis = self.analyze(snapshot)
            page_info = analysis.page_info
            submitted = extract_submitted_credentials(
                analysis.fields,
                submitted_values(snapshot),
                special_handling=requires_special_handling(page_info.domain),
            )
            if not submitted:
                logger.debug("Nothing to save on %s", page_info.page_id)
                return SaveResult(page_info=page_info)

            try:
                key, site = await self.resolve_key(page_info)
                title = site.name if site is not None else (page_info.title or page_info.domain)
                saved = [
                    await self.credentials.save(key, page_info, s.username, s.password, title=title)
                    for s in submitted
                ]
            except StorageError as exc:
                logger.error("Dropped %d credential(s) for %s: %s", len(submitted), page_info.page_id, exc)
                return SaveResult(page_info=page_info, error=str(exc))

            return SaveResult(page_info=page_info, key=key, saved=saved)
