# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for fillmap.title_extractor — domain titles, scoring, strategy chain."""

from __future__ import annotations

import pytest

from fillmap.i18n import FALLBACK_TITLE
from fillmap.title_extractor import (
    extract_page_title,
    friendly_title_from_domain,
    is_generic_text,
    is_title_candidate,
    is_user_input_value,
    rank_titles,
    score_title,
    select_best_title,
    title_from_url,
)
from fillmap.tree import AssistSnapshot, HtmlInfo, ViewNode, WindowNode
from tests._snapshot_helpers import label


def _page(*children: ViewNode) -> AssistSnapshot:
    return AssistSnapshot(
        windows=(WindowNode(root=ViewNode(class_name="android.widget.FrameLayout", children=children)),),
        package_name="com.example.app",
    )


def _html(tag: str, text: str | None = None, **attrs: str) -> ViewNode:
    return ViewNode(text=text, html_info=HtmlInfo(tag=tag, attributes=tuple(attrs.items())))


# ---------------------------------------------------------------------------
# Domain titles
# ---------------------------------------------------------------------------


class TestFriendlyTitleFromDomain:
    @pytest.mark.parametrize(
        ("domain", "title"),
        [
            ("github.com", "GitHub"),
            ("accounts.google.com", "Google"),
            ("stackoverflow.com", "Stack Overflow"),
            ("paypal.com", "PayPal"),
        ],
    )
    def test_brands(self, domain, title):
        assert friendly_title_from_domain(domain) == title

    def test_hosted_app_subdomain(self):
        assert friendly_title_from_domain("my-cool-app.herokuapp.com") == "My Cool App"

    def test_vercel_subdomain(self):
        assert friendly_title_from_domain("shop-front.vercel.app") == "Shop Front"

    def test_github_pages_before_brand(self):
        assert friendly_title_from_domain("octocat.github.io") == "octocat's GitHub Page"

    @pytest.mark.parametrize(
        ("domain", "title"),
        [
            ("practice.expandtesting.com", "Practice Site"),
            ("demo.example.org", "Demo Site"),
            ("staging.acme.io", "Staging Site"),
        ],
    )
    def test_environment_words(self, domain, title):
        assert friendly_title_from_domain(domain) == title

    def test_second_level_label(self):
        assert friendly_title_from_domain("mybank.cl") == "Mybank"

    def test_single_label(self):
        assert friendly_title_from_domain("intranet") == "Intranet"


# ---------------------------------------------------------------------------
# Filters and scoring
# ---------------------------------------------------------------------------


class TestFilters:
    @pytest.mark.parametrize("text", ["Submit", "LOGIN", "12345", "ab"])
    def test_generic(self, text):
        assert is_generic_text(text)

    def test_not_generic(self):
        assert not is_generic_text("Customer Portal")

    @pytest.mark.parametrize("text", ["student123", "Pass1", "me@example.com", "+56 9 1234 5678"])
    def test_user_input_values(self, text):
        assert is_user_input_value(text)

    def test_browser_chrome_rejected(self):
        assert not is_title_candidate("Open in new tab")

    def test_too_long_rejected(self):
        assert not is_title_candidate("x" * 61)

    def test_candidate(self):
        assert is_title_candidate("Customer Portal")


class TestScoreTitle:
    def test_dashboard_beats_user_input(self):
        assert score_title("Dashboard") > score_title("a1b2c3")

    def test_dashboard_score(self):
        # 5-25 chars, bonus keyword, capitalized
        assert score_title("Dashboard") == 15

    def test_user_input_penalty(self):
        assert score_title("a1b2c3") == 2

    def test_mostly_digits_penalised(self):
        assert score_title("Room 1234567") < score_title("Room Booking")

    def test_numeric_excluded_from_selection(self):
        assert select_best_title(["123456", "Dashboard", "a1b2c3"]) == "Dashboard"

    def test_select_none_when_all_generic(self):
        assert select_best_title(["OK", "Submit", "42"]) is None

    def test_rank_dedupes_case_insensitively(self):
        ranked = rank_titles(["Acme Portal", "acme portal", "Welcome Home"])
        assert len(ranked) == 2
        assert "Acme Portal" in ranked

    def test_rank_limit(self):
        titles = [f"Section {c}" for c in "ABCDEFGH"]
        assert len(rank_titles(titles, limit=5)) == 5


class TestTitleFromUrl:
    @pytest.mark.parametrize(
        ("url", "title"),
        [
            ("https://my-app.herokuapp.com/login", "My App"),
            ("https://someone.github.io/site", "GitHub Pages"),
            ("https://x.netlify.app", "Netlify App"),
            ("https://staging.acme.internal/login", "Staging"),
            ("https://dev.acme.internal/", "Development"),
        ],
    )
    def test_patterns(self, url, title):
        assert title_from_url(url) == title

    def test_no_pattern(self):
        assert title_from_url("https://acme.internal/") is None


# ---------------------------------------------------------------------------
# Chain
# ---------------------------------------------------------------------------


class TestExtractPageTitle:
    def test_domain_first(self):
        snap = _page(_html("title", "Some Other Title"))
        assert extract_page_title(snap, url="https://github.com/login", domain="github.com") == "GitHub"

    def test_html_title_tag(self):
        snap = _page(_html("h1", "Welcome Back"), _html("title", "Acme Customer Portal"))
        assert extract_page_title(snap) == "Acme Customer Portal"

    def test_html_best_scored(self):
        snap = _page(_html("h2", "a1b2c3d4"), _html("h1", "Member Login"))
        assert extract_page_title(snap) == "Member Login"

    def test_meta_tags(self):
        snap = _page(_html("meta", None, property="og:title", content="Acme Rewards"))
        assert extract_page_title(snap) == "Acme Rewards"

    def test_meta_without_title_property_ignored(self):
        snap = _page(_html("meta", None, name="description", content="A long description"))
        assert extract_page_title(snap) != "A long description"

    def test_navigation_container(self):
        toolbar = ViewNode(class_name="androidx.appcompat.widget.Toolbar", text="Acme Bank")
        snap = _page(toolbar, label("Some body text here"))
        assert extract_page_title(snap) == "Acme Bank"

    def test_navigation_by_id(self):
        brand = ViewNode(id_entry="com.acme:id/brand_title", text="Acme Wallet")
        assert extract_page_title(_page(brand)) == "Acme Wallet"

    def test_visible_text_ranked(self):
        snap = _page(label("Login"), label("student123"), label("Member Area"))
        assert extract_page_title(snap) == "Member Area"

    def test_url_pattern_when_no_text(self):
        assert extract_page_title(_page(), url="https://localhost-demo/", domain="com.android") == "Demo Site"

    def test_fallback(self):
        assert extract_page_title(_page(label("OK"), label("12345"))) == FALLBACK_TITLE
