# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""URL and domain discovery in assist-structure snapshots.

``extract_url`` runs a 5-strategy fallback chain, most reliable first:

  1. Web domain reported directly on a node (authoritative, stops here)
  2. URL-shaped text in a window title
  3. Browser-specific scans keyed off the host package (Chrome, Firefox)
  4. Generic scan of every node (WebView domain, URL-shaped url/href attributes, text, hint)
  5. Domain pattern anywhere in collected text/description/hint strings

Free-text matches (strategies 4-5) only accept bare domains that carry a
common TLD label (com, org, co, ...) and do not sit after an ``@``, which
keeps email addresses and incidental words out.  Nothing here raises.
"""

from __future__ import annotations

import logging
import re
from urllib.parse import urlsplit

from .tree import AssistSnapshot, ViewNode, collect_texts, iter_nodes, iter_snapshot_nodes

logger = logging.getLogger(__name__)

WEBVIEW_CLASS = "android.webkit.WebView"

# Package-style identifiers that hosts sometimes report where a domain belongs.
INTERNAL_PREFIXES: tuple[str, ...] = (
    "com.android",
    "com.google.android",
    "com.chrome",
    "com.firefox",
    "org.mozilla",
    "com.microsoft",
    "com.samsung",
    "com.huawei",
)

# Bare domains found in free text need one of these as a non-leading label.
TEXT_DOMAIN_LABELS: frozenset[str] = frozenset({"com", "org", "net", "edu", "gov", "io", "co", "app"})

# Chrome address-bar style view ids.
ADDRESS_BAR_IDS: frozenset[str] = frozenset(
    {
        "url_bar",
        "location_bar",
        "omnibox_text",
        "location_bar_status",
        "location_bar_verbose_status",
        "url_text",
        "address_bar",
    }
)

_URL_RE = re.compile(r"https?://\S+")
_BARE_DOMAIN_RE = re.compile(r"(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)+[a-zA-Z]{2,}")
_VALID_DOMAIN_RE = re.compile(
    r"^[a-zA-Z0-9]([a-zA-Z0-9-]*[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9-]*[a-zA-Z0-9])?)*\.[a-zA-Z]{2,}$"
)

_MAX_SHORT_TEXT = 100
_MAX_SCANNED_TEXT = 200


# ---------------------------------------------------------------------------
# Domain helpers
# ---------------------------------------------------------------------------


def is_valid_domain(domain: str) -> bool:
    """True for a plausible public hostname that is not a package identifier."""
    if any(domain.startswith(p) for p in INTERNAL_PREFIXES):
        return False
    return bool(_VALID_DOMAIN_RE.match(domain)) and len(domain) < 100 and "." in domain


def _strip_www(host: str) -> str:
    return host[4:] if host.startswith("www.") else host


def extract_domain(url: str | None) -> str | None:
    """Host part of ``url`` without a leading ``www.``.

    Falls back to manual stripping (scheme prefix, cut at ``/`` and ``?``)
    when the string does not parse as an absolute URL.
    """
    if not url:
        return None
    try:
        host = urlsplit(url).hostname
    except ValueError:
        logger.debug("URL parse failed, using manual split: %r", url)
        host = None
    if not host:
        stripped = url.removeprefix("http://").removeprefix("https://")
        host = stripped.split("/")[0].split("?")[0]
    host = _strip_www(host)
    return host or None


def is_same_domain(url1: str | None, url2: str | None) -> bool:
    d1 = extract_domain(url1)
    d2 = extract_domain(url2)
    return d1 is not None and d2 is not None and d1.lower() == d2.lower()


def _bare_domain_in_text(text: str) -> str | None:
    """Domain-looking substring of short free text, filtered for false positives."""
    if len(text) >= _MAX_SHORT_TEXT:
        return None
    m = _BARE_DOMAIN_RE.search(text)
    if m is None:
        return None
    domain = m.group(0)
    if any(domain.startswith(p) for p in INTERNAL_PREFIXES):
        logger.debug("Rejected package-style domain: %s", domain)
        return None
    at = text.find("@")
    if at != -1 and m.start() >= at:
        return None
    if not any(part in TEXT_DOMAIN_LABELS for part in domain.lower().split(".")[1:]):
        return None
    return domain


def extract_url_from_text(text: str) -> str | None:
    """Absolute URL, embedded URL, or bare domain (as ``https://``) found in ``text``."""
    if text.startswith(("http://", "https://")):
        return text
    m = _URL_RE.search(text)
    if m:
        return m.group(0)
    domain = _bare_domain_in_text(text)
    if domain:
        return f"https://{domain}"
    return None


# ---------------------------------------------------------------------------
# Strategy 1: direct web domain
# ---------------------------------------------------------------------------


def extract_web_domain(snapshot: AssistSnapshot) -> str | None:
    """First valid web domain reported on any node, in walk order."""
    for node in iter_snapshot_nodes(snapshot):
        wd = node.web_domain
        if wd and wd.strip():
            if is_valid_domain(wd):
                return wd
            logger.debug("Ignoring invalid web domain: %s", wd)
    return None


# ---------------------------------------------------------------------------
# Strategy 3: browser-specific scans
# ---------------------------------------------------------------------------


def _view_id(id_entry: str | None) -> str:
    # "com.android.chrome:id/url_bar" -> "url_bar"
    if not id_entry:
        return ""
    return id_entry.rsplit("/", 1)[-1]


def _find_chrome_url(root: ViewNode) -> str | None:
    # Pass 1: WebView domains and address-bar widgets only.
    for node in iter_nodes(root):
        if node.class_name == WEBVIEW_CLASS and node.web_domain:
            return f"https://{node.web_domain}"
        if _view_id(node.id_entry) in ADDRESS_BAR_IDS:
            for value in (node.text, node.content_description):
                if value and (url := extract_url_from_text(value)):
                    logger.debug("Address bar %s: %s", node.id_entry, url)
                    return url
    # Pass 2: any text or description in the subtree.
    for node in iter_nodes(root):
        for value in (node.text, node.content_description):
            if value and (url := extract_url_from_text(value)):
                return url
    return None


def _find_firefox_url(root: ViewNode) -> str | None:
    for node in iter_nodes(root):
        text = node.text
        if text and ("http://" in text or "https://" in text):
            m = _URL_RE.search(text)
            if m:
                return m.group(0)
    return None


_BROWSER_SCANS = (
    ("chrome", _find_chrome_url),
    ("firefox", _find_firefox_url),
)


# ---------------------------------------------------------------------------
# Strategy 4: generic node scan
# ---------------------------------------------------------------------------


def _url_from_node(node: ViewNode) -> str | None:
    if node.class_name == WEBVIEW_CLASS and node.web_domain:
        return f"https://{node.web_domain}"
    if node.html_info is not None:
        for key, value in node.html_info.attributes:
            k = (key or "").lower()
            if ("url" in k or "href" in k) and value and (url := extract_url_from_text(value)):
                return url
    text = node.text
    if text:
        if text.startswith(("http://", "https://")):
            return text
        domain = _bare_domain_in_text(text)
        if domain:
            return f"https://{domain}"
    if node.hint:
        domain = _bare_domain_in_text(node.hint)
        if domain:
            return f"https://{domain}"
    return None


# ---------------------------------------------------------------------------
# Chain
# ---------------------------------------------------------------------------


def extract_url(snapshot: AssistSnapshot) -> str | None:
    """Best-effort page URL for ``snapshot``; ``None`` when nothing qualifies."""
    web_domain = extract_web_domain(snapshot)
    if web_domain is not None:
        logger.debug("URL via web domain: %s", web_domain)
        return f"https://{web_domain}"

    for window in snapshot.windows:
        if window.title and (url := extract_url_from_text(window.title)):
            logger.debug("URL via window title: %s", url)
            return url

    package = (snapshot.package_name or "").lower()
    for family, scan in _BROWSER_SCANS:
        if family in package:
            for window in snapshot.windows:
                if url := scan(window.root):
                    logger.debug("URL via %s scan: %s", family, url)
                    return url
            break

    for node in iter_snapshot_nodes(snapshot):
        if url := _url_from_node(node):
            logger.debug("URL via node scan: %s", url)
            return url

    for text in collect_texts(snapshot):
        if len(text) < _MAX_SCANNED_TEXT and (url := extract_url_from_text(text)):
            logger.debug("URL via text scan: %s", url)
            return url

    return None


def browser_family(package_name: str | None) -> str:
    """``chrome``, ``firefox`` or ``generic`` for the hosting application."""
    package = (package_name or "").lower()
    for family, _scan in _BROWSER_SCANS:
        if family in package:
            return family
    return "generic"
