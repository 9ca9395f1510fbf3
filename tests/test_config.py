# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for fillmap.config — defaults and FILLMAP_* overrides."""

from __future__ import annotations

import pytest

from fillmap.config import DEFAULT_DB_PATH, Settings
from fillmap.site_registry import SIMILARITY_THRESHOLD


class TestDefaults:
    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings == Settings()
        assert settings.db_path == DEFAULT_DB_PATH
        assert settings.similarity_threshold == SIMILARITY_THRESHOLD
        assert settings.log_level == "INFO"
        assert settings.log_json is False

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("FILLMAP_DB_PATH", "/tmp/from-env.db")
        assert Settings.from_env().db_path == "/tmp/from-env.db"


class TestOverrides:
    def test_db_path(self):
        assert Settings.from_env({"FILLMAP_DB_PATH": "  /data/fm.db "}).db_path == "/data/fm.db"

    def test_blank_db_path_ignored(self):
        assert Settings.from_env({"FILLMAP_DB_PATH": "   "}).db_path == DEFAULT_DB_PATH

    def test_threshold(self):
        assert Settings.from_env({"FILLMAP_SIMILARITY_THRESHOLD": "0.75"}).similarity_threshold == 0.75

    @pytest.mark.parametrize("raw", ["abc", "0", "-0.5", "1.5", ""])
    def test_bad_threshold_keeps_default(self, raw):
        settings = Settings.from_env({"FILLMAP_SIMILARITY_THRESHOLD": raw})
        assert settings.similarity_threshold == SIMILARITY_THRESHOLD

    def test_threshold_of_one_allowed(self):
        assert Settings.from_env({"FILLMAP_SIMILARITY_THRESHOLD": "1"}).similarity_threshold == 1.0

    def test_log_level_normalized(self):
        assert Settings.from_env({"FILLMAP_LOG_LEVEL": "debug"}).log_level == "DEBUG"

    def test_unknown_log_level_ignored(self):
        assert Settings.from_env({"FILLMAP_LOG_LEVEL": "chatty"}).log_level == "INFO"

    @pytest.mark.parametrize(("raw", "expected"), [("1", True), ("TRUE", True), ("yes", True), ("0", False), ("", False)])
    def test_log_json(self, raw, expected):
        assert Settings.from_env({"FILLMAP_LOG_JSON": raw}).log_json is expected

    def test_frozen(self):
        with pytest.raises(AttributeError):
            Settings().log_level = "DEBUG"
