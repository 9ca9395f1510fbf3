# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""End-to-end tests for AutofillEngine — fill and save visits."""

from __future__ import annotations

import pytest
import structlog

from fillmap import AutofillId, FieldRole
from fillmap.config import Settings
from fillmap.credentials import SaveOutcome
from fillmap.engine import AutofillEngine, analyze_snapshot, submitted_values
from fillmap.errors import StorageError
from fillmap.repository import InMemoryRepository
from fillmap.site_registry import pick_most_recent
from tests._snapshot_helpers import anonymous_login, html_input, label, mybank_login, native_input, snapshot


@pytest.fixture
async def engine(repo, fixed_clock):
    return AutofillEngine(repo, clock=fixed_clock)


def _bank_login(user_value: str | None = None, pass_value: str | None = None):
    """A bank page whose inputs carry raw ``off`` / ``new-password`` hints."""
    return snapshot(
        native_input("u", hints=("off",), value=user_value),
        native_input("p", hints=("new-password",), value=pass_value),
        domain="bancoestado.cl",
    )


def _linked_form(first_label: str, second_label: str, user_value: str | None = None, pass_value: str | None = None):
    """A form whose only link is an in-page ``#`` anchor."""
    return snapshot(
        html_input("link", input_type=None, tag="a", href="#"),
        label(first_label),
        native_input("user", hints=("username",), value=user_value),
        label(second_label),
        native_input("pass", hints=("password",), value=pass_value),
        package_name="com.example.app",
    )


class _BrokenRepository(InMemoryRepository):
    async def credentials_for_domain(self, domain):
        raise StorageError("disk I/O error", operation="credentials_for_domain")

    async def find_credential(self, domain, username):
        raise StorageError("disk I/O error", operation="find_credential")


# ---------------------------------------------------------------------------
# Analysis helpers
# ---------------------------------------------------------------------------


class TestAnalyze:
    def test_bank_roles_rewritten(self):
        analysis = analyze_snapshot(_bank_login())
        assert [f.role for f in analysis.fields] == [FieldRole.USERNAME, FieldRole.PASSWORD]
        assert analysis.page_info.domain == "bancoestado.cl"

    def test_other_domains_untouched(self):
        snap = snapshot(native_input("u", hints=("off",)), domain="example.com")
        assert [f.role for f in analyze_snapshot(snap).fields] == ["off"]

    def test_submitted_values(self):
        values = submitted_values(mybank_login("12345678-9", "s3cret"))
        assert values == {AutofillId("rut-field"): "12345678-9", AutofillId("pass-field"): "s3cret"}

    def test_submitted_values_skip_empty(self):
        assert submitted_values(mybank_login()) == {}


# ---------------------------------------------------------------------------
# Fill
# ---------------------------------------------------------------------------


class TestHandleFill:
    async def test_no_fields(self, engine):
        result = await engine.handle_fill(snapshot(label("Hello")))
        assert result.is_empty
        assert result.key is None
        assert result.datasets == []

    async def test_real_domain_without_credentials(self, engine):
        result = await engine.handle_fill(mybank_login())
        assert result.key == "mybank.cl"
        assert result.site is None
        assert result.datasets == []
        assert result.save_fields == [AutofillId("pass-field")]
        assert not result.is_empty

    async def test_save_then_fill(self, engine):
        saved = await engine.handle_save(mybank_login("12345678-9", "s3cret"))
        assert [outcome for outcome, _ in saved.saved] == [SaveOutcome.INSERTED]

        result = await engine.handle_fill(mybank_login())
        assert len(result.datasets) == 1
        assert result.datasets[0].values == {
            AutofillId("rut-field"): "12345678-9",
            AutofillId("pass-field"): "s3cret",
        }

    async def test_anonymous_page_keyed_by_site(self, engine, repo):
        result = await engine.handle_fill(anonymous_login())
        assert result.site is not None
        assert result.key == result.site.page_id
        assert result.key.startswith("page_")
        assert len(await repo.list_sites()) == 1

    async def test_fragment_links_do_not_share_credentials(self, engine):
        saved = await engine.handle_save(_linked_form("Username", "Password", "alice", "s3cret"))
        _, cred = saved.saved[0]
        assert cred.domain.startswith("page_")

        result = await engine.handle_fill(_linked_form("Email", "Login"))
        assert result.key != cred.domain
        assert result.datasets == []

    async def test_storage_failure_degrades(self, fixed_clock):
        engine = AutofillEngine(_BrokenRepository(), clock=fixed_clock)
        result = await engine.handle_fill(mybank_login())
        assert result.error is not None
        assert "disk I/O error" in result.error
        assert result.datasets == []
        assert result.save_fields == [AutofillId("pass-field")]

    async def test_visit_context_bound_during_request(self, repo, fixed_clock):
        seen: list[dict] = []

        def policy(resolution):
            seen.append(structlog.contextvars.get_contextvars())
            return pick_most_recent(resolution)

        engine = AutofillEngine(repo, policy=policy, clock=fixed_clock)
        await engine.handle_fill(anonymous_login())

        assert len(seen) == 1
        assert seen[0]["request"] == "fill"
        assert len(seen[0]["visit_id"]) == 12
        assert "visit_id" not in structlog.contextvars.get_contextvars()


# ---------------------------------------------------------------------------
# Save
# ---------------------------------------------------------------------------


class TestHandleSave:
    async def test_nothing_submitted(self, engine):
        result = await engine.handle_save(mybank_login())
        assert result.saved == []
        assert result.key is None

    async def test_resave_touches_then_updates(self, engine):
        await engine.handle_save(mybank_login("alice", "one"))
        same = await engine.handle_save(mybank_login("alice", "one"))
        changed = await engine.handle_save(mybank_login("alice", "two"))
        assert same.saved[0][0] is SaveOutcome.TOUCHED
        assert changed.saved[0][0] is SaveOutcome.UPDATED

    async def test_real_domain_title(self, engine):
        result = await engine.handle_save(mybank_login("alice", "s3cret"))
        _, cred = result.saved[0]
        assert cred.domain == "mybank.cl"
        assert cred.title == result.page_info.title

    async def test_anonymous_credentials_follow_site(self, engine):
        saved = await engine.handle_save(anonymous_login("alice", "s3cret"))
        site = (await engine.registry.list_sites())[0]
        _, cred = saved.saved[0]
        assert cred.domain == site.page_id
        assert cred.title == site.name

        result = await engine.handle_fill(anonymous_login())
        assert [d.credential.username for d in result.datasets] == ["alice"]

    async def test_renamed_site_title_used(self, engine):
        first = await engine.handle_fill(anonymous_login())
        await engine.registry.rename(first.site.id, "Work VPN")
        saved = await engine.handle_save(anonymous_login("alice", "s3cret"))
        assert saved.saved[0][1].title == "Work VPN"

    async def test_bank_special_handling(self, engine):
        saved = await engine.handle_save(_bank_login("12345678-9", "s3cret"))
        assert saved.key == "bancoestado.cl"
        assert [c.username for _, c in saved.saved] == ["12345678-9"]

        result = await engine.handle_fill(_bank_login())
        assert result.datasets[0].values == {AutofillId("u"): "12345678-9", AutofillId("p"): "s3cret"}

    async def test_storage_failure_drops_submission(self, fixed_clock):
        engine = AutofillEngine(_BrokenRepository(), clock=fixed_clock)
        result = await engine.handle_save(mybank_login("alice", "s3cret"))
        assert result.saved == []
        assert "disk I/O error" in result.error


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestOpen:
    async def test_open_uses_sqlite_path(self, tmp_path):
        db_path = tmp_path / "engine" / "fillmap.db"
        async with await AutofillEngine.open(Settings(db_path=str(db_path))) as engine:
            await engine.handle_save(mybank_login("alice", "s3cret"))
        assert db_path.exists()

        async with await AutofillEngine.open(Settings(db_path=str(db_path))) as engine:
            result = await engine.handle_fill(mybank_login())
        assert [d.credential.username for d in result.datasets] == ["alice"]

    async def test_threshold_from_settings(self, repo):
        engine = AutofillEngine(repo, Settings(similarity_threshold=0.8))
        assert engine.registry.threshold == 0.8
