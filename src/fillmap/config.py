# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Runtime settings with ``FILLMAP_*`` environment overrides.

Invalid values are ignored and the default kept.  CLI flags, when given,
override whatever the environment provides.
"""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from contextlib import suppress
from dataclasses import dataclass

from .site_registry import SIMILARITY_THRESHOLD

DEFAULT_DB_PATH = "~/.fillmap/fillmap.db"
_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


@dataclass(frozen=True, slots=True)
class Settings:
    db_path: str = DEFAULT_DB_PATH
    similarity_threshold: float = SIMILARITY_THRESHOLD
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        settings = cls()

        env_db = env.get("FILLMAP_DB_PATH", "").strip()
        if env_db:
            settings = dataclasses.replace(settings, db_path=env_db)

        env_threshold = env.get("FILLMAP_SIMILARITY_THRESHOLD", "").strip()
        if env_threshold:
            with suppress(ValueError):
                threshold = float(env_threshold)
                if 0.0 < threshold <= 1.0:
                    settings = dataclasses.replace(settings, similarity_threshold=threshold)

        env_level = env.get("FILLMAP_LOG_LEVEL", "").strip().upper()
        if env_level in _LOG_LEVELS:
            settings = dataclasses.replace(settings, log_level=env_level)

        env_json = env.get("FILLMAP_LOG_JSON", "").strip().lower()
        if env_json in ("1", "true", "yes"):
            settings = dataclasses.replace(settings, log_json=True)

        return settings
