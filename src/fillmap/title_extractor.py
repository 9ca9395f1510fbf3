# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Human-friendly page titles from a snapshot — strategy chain + scoring.

Strategies, first non-empty result wins:
  1. Domain    – curated brand names, hosted-app subdomains, main label
  2. HTML      – <title>, <h1>-<h3> text
  3. Meta      – og:title / twitter:title / title / application-name content
  4. Nav       – text inside toolbar/header/brand containers
  5. Text      – every visible text, quality-filtered and ranked
  6. URL       – hosting-platform patterns in the URL
  7. Fallback  – constant

Ranking uses ``score_title``: mid-length, word-like, capitalized strings
beat input values, counters and browser chrome.
"""

from __future__ import annotations

import logging
import re

from .i18n import BROWSER_UI_TERMS, FALLBACK_TITLE, GENERIC_UI_TERMS, TITLE_BONUS_TERMS
from .tree import AssistSnapshot, iter_snapshot_nodes
from .url_utils import extract_domain, extract_url

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Domain → title tables
# ---------------------------------------------------------------------------

# Substring of the domain → display name.  Evaluated in order.
BRAND_TITLES: tuple[tuple[str, str], ...] = (
    ("github", "GitHub"),
    ("google", "Google"),
    ("facebook", "Facebook"),
    ("twitter", "Twitter"),
    ("linkedin", "LinkedIn"),
    ("instagram", "Instagram"),
    ("youtube", "YouTube"),
    ("netflix", "Netflix"),
    ("amazon", "Amazon"),
    ("microsoft", "Microsoft"),
    ("apple", "Apple"),
    ("stackoverflow", "Stack Overflow"),
    ("reddit", "Reddit"),
    ("wikipedia", "Wikipedia"),
    ("medium", "Medium"),
    ("dropbox", "Dropbox"),
    ("slack", "Slack"),
    ("discord", "Discord"),
    ("zoom", "Zoom"),
    ("paypal", "PayPal"),
    ("stripe", "Stripe"),
    ("shopify", "Shopify"),
    ("wordpress", "WordPress"),
    ("blogger", "Blogger"),
    ("tumblr", "Tumblr"),
    ("pinterest", "Pinterest"),
    ("twitch", "Twitch"),
    ("spotify", "Spotify"),
    ("soundcloud", "SoundCloud"),
    ("vimeo", "Vimeo"),
    ("dailymotion", "Dailymotion"),
)

# Hosting platform suffix → fallback name when no subdomain label exists.
HOSTED_APP_SUFFIXES: tuple[tuple[str, str], ...] = (
    (".herokuapp.com", "Heroku App"),
    (".vercel.app", "Vercel App"),
    (".netlify.app", "Netlify App"),
    (".firebaseapp.com", "Firebase App"),
)

# Environment words in the domain (or URL) → generic name.
ENVIRONMENT_TITLES: tuple[tuple[str, str], ...] = (
    ("testautomation", "Test Automation"),
    ("practice", "Practice Site"),
    ("demo", "Demo Site"),
    ("test", "Test Site"),
    ("staging", "Staging Site"),
    ("dev", "Development Site"),
)

URL_ENVIRONMENT_TITLES: tuple[tuple[str, str], ...] = (
    ("testautomation", "Test Automation"),
    ("practice", "Practice Site"),
    ("demo", "Demo Site"),
    ("test", "Test Site"),
    ("staging", "Staging"),
    ("dev", "Development"),
)

HTML_TITLE_TAGS = frozenset({"h1", "h2", "h3"})
META_TITLE_PROPERTIES = frozenset({"og:title", "twitter:title"})
META_TITLE_NAMES = frozenset({"title", "application-name"})
NAV_CLASS_MARKERS: tuple[str, ...] = ("toolbar", "header", "navbar", "navigation")
NAV_ID_MARKERS: tuple[str, ...] = ("toolbar", "header", "title", "brand")

_GENERIC_SET = frozenset(GENERIC_UI_TERMS)
_NUMERIC_RE = re.compile(r"\d+")
_LOWER_THEN_DIGIT_RE = re.compile(r"[a-z]+[0-9]+")
_UPPER_THEN_DIGIT_RE = re.compile(r"[A-Z].*[0-9]")
_PHONE_RE = re.compile(r"\+?[0-9\-()\s]+")


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:]


def _hyphen_title(label: str) -> str:
    return " ".join(_capitalize(part) for part in label.split("-"))


# ---------------------------------------------------------------------------
# Strategy 1: domain
# ---------------------------------------------------------------------------


def friendly_title_from_domain(domain: str) -> str:
    """Display name for a real domain."""
    d = domain.lower()

    for suffix, fallback in HOSTED_APP_SUFFIXES:
        if suffix[1:] in d:
            app = domain[: d.find(suffix)] if suffix in d else ""
            return _hyphen_title(app) if app.strip() else fallback
    if "github.io" in d:
        return f"{domain.split('.')[0]}'s GitHub Page"

    for needle, title in BRAND_TITLES:
        if needle in d:
            return title
    for needle, title in ENVIRONMENT_TITLES:
        if needle in d:
            return title

    parts = domain.split(".")
    main = parts[-2] if len(parts) >= 2 else domain
    return _capitalize(main)


# ---------------------------------------------------------------------------
# Quality filters and scoring
# ---------------------------------------------------------------------------


def is_generic_text(text: str) -> bool:
    """Boilerplate UI words, bare numbers and very short strings."""
    return text.lower() in _GENERIC_SET or bool(_NUMERIC_RE.fullmatch(text)) or len(text) < 3


def is_user_input_value(text: str) -> bool:
    """Values that look typed by a user: ``student123``, ``Pass1``, emails, phones."""
    return (
        bool(_LOWER_THEN_DIGIT_RE.search(text))
        or bool(_UPPER_THEN_DIGIT_RE.search(text))
        or "@" in text
        or bool(_PHONE_RE.fullmatch(text))
    )


def is_browser_ui(text: str) -> bool:
    lowered = text.lower()
    return any(term in lowered for term in BROWSER_UI_TERMS)


def is_title_candidate(text: str) -> bool:
    return (
        3 <= len(text) <= 60
        and not is_generic_text(text)
        and not is_user_input_value(text)
        and not is_browser_ui(text)
    )


def score_title(title: str) -> int:
    """Heuristic quality score; higher is a better page title."""
    score = 0
    n = len(title)
    if 5 <= n <= 25:
        score += 10
    elif 26 <= n <= 40:
        score += 8
    elif 3 <= n <= 4:
        score += 5
    elif 41 <= n <= 60:
        score += 3

    digits = sum(1 for c in title if c.isdigit())
    if digits > n // 2:
        score -= 5

    lowered = title.lower()
    if any(term in lowered for term in TITLE_BONUS_TERMS):
        score += 3

    if _LOWER_THEN_DIGIT_RE.search(title) or _UPPER_THEN_DIGIT_RE.search(title):
        score -= 8

    words = title.split(" ")
    if all(w and (w[0].isupper() or all(c.islower() for c in w)) for w in words):
        score += 2

    return score


def select_best_title(titles: list[str]) -> str | None:
    ranked = sorted((t for t in titles if not is_generic_text(t)), key=score_title, reverse=True)
    return ranked[0] if ranked else None


def rank_titles(titles: list[str], *, limit: int = 5) -> list[str]:
    """Filter ``titles`` to plausible page titles, best first, de-duplicated."""
    seen: set[str] = set()
    kept: list[str] = []
    for t in titles:
        if not is_title_candidate(t):
            continue
        key = t.lower().strip()
        if key in seen:
            continue
        seen.add(key)
        kept.append(t)
    kept.sort(key=score_title, reverse=True)
    return kept[:limit]


# ---------------------------------------------------------------------------
# Strategies 2-5: collectors
# ---------------------------------------------------------------------------


def _dedupe(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


def collect_html_titles(snapshot: AssistSnapshot) -> list[str]:
    titles: list[str] = []
    for node in iter_snapshot_nodes(snapshot):
        if node.html_info is None or not node.text or not node.text.strip():
            continue
        tag = node.html_info.tag_lower
        text = node.text
        if (tag == "title" and 3 <= len(text) <= 100) or (tag in HTML_TITLE_TAGS and 3 <= len(text) <= 60):
            titles.append(text.strip())
    return _dedupe(titles)


def collect_meta_titles(snapshot: AssistSnapshot) -> list[str]:
    titles: list[str] = []
    for node in iter_snapshot_nodes(snapshot):
        html = node.html_info
        if html is None or html.tag_lower != "meta":
            continue
        is_title_meta = any(
            (key.lower() == "property" and value in META_TITLE_PROPERTIES)
            or (key.lower() == "name" and value in META_TITLE_NAMES)
            for key, value in html.attributes
            if key
        )
        if not is_title_meta:
            continue
        content = html.get("content")
        if content and content.strip() and 3 <= len(content) <= 100:
            titles.append(content.strip())
    return _dedupe(titles)


def collect_navigation_titles(snapshot: AssistSnapshot) -> list[str]:
    titles: list[str] = []
    for node in iter_snapshot_nodes(snapshot):
        class_name = (node.class_name or "").lower()
        view_id = (node.id_entry or "").lower()
        if not (any(m in class_name for m in NAV_CLASS_MARKERS) or any(m in view_id for m in NAV_ID_MARKERS)):
            continue
        text = node.text
        if text and text.strip() and 3 <= len(text) <= 50 and not is_generic_text(text):
            titles.append(text.strip())
    return _dedupe(titles)


def collect_visible_texts(snapshot: AssistSnapshot) -> list[str]:
    return [
        node.text.strip()
        for node in iter_snapshot_nodes(snapshot)
        if node.text and 3 <= len(node.text) <= 100 and not _NUMERIC_RE.fullmatch(node.text)
    ]


# ---------------------------------------------------------------------------
# Strategy 6: URL patterns
# ---------------------------------------------------------------------------


def title_from_url(url: str) -> str | None:
    if "herokuapp.com" in url:
        app = url.partition("://")[2].partition(".herokuapp.com")[0]
        return _hyphen_title(app) if app.strip() else "Heroku App"
    if "github.io" in url:
        return "GitHub Pages"
    if "vercel.app" in url:
        return "Vercel App"
    if "netlify.app" in url:
        return "Netlify App"
    if "firebaseapp.com" in url:
        return "Firebase App"
    for needle, title in URL_ENVIRONMENT_TITLES:
        if needle in url:
            return title
    return None


# ---------------------------------------------------------------------------
# Chain
# ---------------------------------------------------------------------------


def extract_page_title(
    snapshot: AssistSnapshot,
    *,
    url: str | None = None,
    domain: str | None = None,
) -> str:
    """Best display title for the page; never empty."""
    if url is None:
        url = extract_url(snapshot)
    if domain is None:
        domain = extract_domain(url)

    if domain and domain != "com.android":
        title = friendly_title_from_domain(domain)
        logger.debug("Title from domain %s: %s", domain, title)
        return title

    for name, collector in (
        ("html", collect_html_titles),
        ("meta", collect_meta_titles),
        ("navigation", collect_navigation_titles),
    ):
        best = select_best_title(collector(snapshot))
        if best:
            logger.debug("Title from %s: %s", name, best)
            return best

    ranked = rank_titles(collect_visible_texts(snapshot))
    if ranked:
        logger.debug("Title from visible text: %s (candidates=%s)", ranked[0], ranked)
        return ranked[0]

    if url and (title := title_from_url(url)):
        logger.debug("Title from URL pattern: %s", title)
        return title

    return FALLBACK_TITLE
