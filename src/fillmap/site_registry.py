# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Fuzzy registry of previously seen pages.

``SiteRegistry.resolve`` maps a ``PageInfo`` onto a stored ``Site``:

  1. exact ``page_id`` hit          → ``ExactMatch`` (``last_used`` bumped)
  2. Jaccard similarity ≥ threshold → ``SimilarSites`` (caller decides)
  3. otherwise                      → ``NewSite`` (persisted)

Ambiguity is never resolved here.  ``pick_most_recent`` is the default
host policy; hosts with a chooser UI call ``confirm_match`` or
``create_from_similar`` instead.

Resolves for the same signature are serialized by a per-signature lock,
and ``RepositoryProtocol.insert_site`` is insert-or-fetch on ``page_id``,
so concurrent visits to one new page produce a single site.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
import weakref
from collections.abc import Callable
from dataclasses import dataclass

from . import PageInfo
from .errors import SiteNotFoundError
from .repository import RepositoryProtocol, Site

logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 0.6
_MAX_TITLE_NAME = 30
_MIN_TICK = 1e-6


# ---------------------------------------------------------------------------
# Resolution variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ExactMatch:
    site: Site


@dataclass(frozen=True, slots=True)
class SimilarSites:
    """Candidate sites above the threshold, most recently used first."""

    sites: tuple[Site, ...]
    page_info: PageInfo


@dataclass(frozen=True, slots=True)
class NewSite:
    site: Site


SiteResolution = ExactMatch | SimilarSites | NewSite


def pick_most_recent(resolution: SiteResolution) -> Site:
    """Default host policy: take the site itself, or the most recent candidate."""
    match resolution:
        case ExactMatch(site=site) | NewSite(site=site):
            return site
        case SimilarSites(sites=sites):
            return sites[0]
    raise TypeError(f"Unknown resolution: {resolution!r}")


# ---------------------------------------------------------------------------
# Signatures
# ---------------------------------------------------------------------------


def build_signature(page_info: PageInfo) -> str:
    """Sorted ``|``-joined ``key:value`` tokens for the non-empty parts of ``page_info``."""
    tokens = [
        f"{key}:{value}"
        for key, value in (
            ("url", page_info.url),
            ("domain", page_info.domain),
            ("title", page_info.title),
            ("pageId", page_info.page_id),
        )
        if value
    ]
    return "|".join(sorted(tokens))


def similarity(a: str, b: str) -> float:
    """Jaccard similarity of two signatures' token sets; 0.0 when both are empty."""
    tokens_a = set(a.split("|")) if a else set()
    tokens_b = set(b.split("|")) if b else set()
    union = tokens_a | tokens_b
    if not union:
        return 0.0
    return len(tokens_a & tokens_b) / len(union)


def default_site_name(page_info: PageInfo) -> str:
    if page_info.domain:
        return page_info.domain
    if page_info.title and len(page_info.title) <= _MAX_TITLE_NAME:
        return page_info.title
    if page_info.url:
        return page_info.url[:_MAX_TITLE_NAME]
    return f"Site {page_info.page_id[:8]}"


# ---------------------------------------------------------------------------
# SiteRegistry
# ---------------------------------------------------------------------------


class SiteRegistry:
    """Resolve, confirm, and rename sites stored in a ``RepositoryProtocol``."""

    def __init__(
        self,
        repository: RepositoryProtocol,
        *,
        threshold: float = SIMILARITY_THRESHOLD,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._repository = repository
        self._threshold = threshold
        self._clock = clock
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    @property
    def threshold(self) -> float:
        return self._threshold

    def _lock_for(self, signature: str) -> asyncio.Lock:
        lock = self._locks.get(signature)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[signature] = lock
        return lock

    def _next_timestamp(self, previous: float) -> float:
        """Current time, nudged past ``previous`` so ``last_used`` strictly increases."""
        return max(self._clock(), previous + _MIN_TICK)

    async def find_similar(self, signature: str) -> list[Site]:
        """Stored sites whose signature meets the threshold, most recent first."""
        candidates: list[Site] = []
        for site in await self._repository.list_sites():
            score = similarity(signature, site.signature)
            if score >= self._threshold:
                logger.debug("Similar site %r (similarity=%.2f)", site.name, score)
                candidates.append(site)
        candidates.sort(key=lambda s: s.last_used, reverse=True)
        return candidates

    async def resolve(self, page_info: PageInfo) -> SiteResolution:
        signature = build_signature(page_info)
        async with self._lock_for(signature):
            existing = await self._repository.get_site_by_page_id(page_info.page_id)
            if existing is not None:
                last_used = self._next_timestamp(existing.last_used)
                await self._repository.touch_site(existing.id, last_used)
                logger.debug("Exact match for %s: %r", page_info.page_id, existing.name)
                return ExactMatch(dataclasses.replace(existing, last_used=last_used))

            similar = await self.find_similar(signature)
            if similar:
                logger.debug("%d similar site(s) for %s", len(similar), page_info.page_id)
                return SimilarSites(tuple(similar), page_info)

            now = self._clock()
            site = await self._repository.insert_site(
                Site(
                    name=default_site_name(page_info),
                    page_id=page_info.page_id,
                    signature=signature,
                    url=page_info.url,
                    domain=page_info.domain,
                    is_user_named=False,
                    created_at=now,
                    last_used=now,
                )
            )
            logger.info("Registered site %r for %s", site.name, page_info.page_id)
            return NewSite(site)

    async def confirm_match(self, page_info: PageInfo, site: Site) -> Site:
        """Attach ``page_info`` to an existing site so the next visit hits exactly.

        Raises:
            SiteNotFoundError: If ``site`` is no longer stored.
        """
        updated = dataclasses.replace(
            site,
            page_id=page_info.page_id,
            url=page_info.url or site.url,
            domain=page_info.domain or site.domain,
            last_used=self._next_timestamp(site.last_used),
        )
        if not await self._repository.update_site(updated):
            raise SiteNotFoundError(site.id)
        logger.info("Confirmed site %r for %s", updated.name, page_info.page_id)
        return updated

    async def create_from_similar(self, page_info: PageInfo, name: str) -> Site:
        """Store a new, user-named site even though similar ones exist."""
        now = self._clock()
        site = await self._repository.insert_site(
            Site(
                name=name,
                page_id=page_info.page_id,
                signature=build_signature(page_info),
                url=page_info.url,
                domain=page_info.domain,
                is_user_named=True,
                created_at=now,
                last_used=now,
            )
        )
        logger.info("Created site %r from similar candidates", site.name)
        return site

    async def rename(self, site_id: int, name: str) -> Site:
        """Set a display name and mark the site user-named.

        Raises:
            SiteNotFoundError: If no site has ``site_id``.
        """
        if not await self._repository.rename_site(site_id, name):
            raise SiteNotFoundError(site_id)
        site = await self._repository.get_site(site_id)
        if site is None:
            raise SiteNotFoundError(site_id)
        logger.info("Renamed site %d to %r", site_id, name)
        return site

    async def list_sites(self) -> list[Site]:
        return await self._repository.list_sites()
