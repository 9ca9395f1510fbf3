# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Page identity for one visit: real domain when available, else a signature hash.

Fast path: a web domain on any node (or a domain derived from the URL
chain) becomes ``page_id`` and the initial title.

Fallback: a signature built only from a narrow set of *stable* elements
(exact login labels, standard ``name``/``type`` attribute values) is
hashed into ``page_<md5[:8]>``.  Anything that varies between visits to
the same page (typed values, counters, session ids) stays out so the id
survives revisits.  Pages with fewer than two stable elements share a
per-browser login signature.
"""

from __future__ import annotations

import hashlib
import logging

from . import PageInfo
from .i18n import STABLE_LABELS, STABLE_NAME_ATTRS, STABLE_TYPE_ATTRS
from .title_extractor import extract_page_title
from .tree import AssistSnapshot, iter_snapshot_nodes
from .url_utils import browser_family, extract_domain, extract_url, extract_web_domain, is_valid_domain

logger = logging.getLogger(__name__)

PAGE_ID_PREFIX = "page_"
_MIN_STABLE_ELEMENTS = 2
_LOGIN_FORM_TOKEN = "form:login"


def collect_stable_elements(snapshot: AssistSnapshot) -> set[str]:
    """Signature tokens from labels and attributes that never change between visits."""
    elements: set[str] = set()
    for node in iter_snapshot_nodes(snapshot):
        if node.text:
            token = STABLE_LABELS.get(node.text.lower().strip())
            if token:
                elements.add(token)
        if node.html_info is None:
            continue
        for key, value in node.html_info.attributes:
            if value is None:
                continue
            v = value.lower()
            if key == "name" and v in STABLE_NAME_ATTRS:
                elements.add(f"name:{v}")
            elif key == "type" and v in STABLE_TYPE_ATTRS:
                elements.add(f"type:{v}")
    return elements


def create_page_signature(snapshot: AssistSnapshot) -> str:
    """Sorted ``|``-joined stable tokens; never empty."""
    elements = collect_stable_elements(snapshot)
    if len(elements) < _MIN_STABLE_ELEMENTS:
        elements = {f"browser:{browser_family(snapshot.package_name)}", _LOGIN_FORM_TOKEN}
    return "|".join(sorted(elements))


def hash_signature(signature: str) -> str:
    return hashlib.md5(signature.encode("utf-8"), usedforsecurity=False).hexdigest()[:8]


def identify(snapshot: AssistSnapshot) -> PageInfo:
    """Identify the page shown in ``snapshot``.  Deterministic; never raises."""
    url = extract_url(snapshot)
    domain = extract_domain(url)
    if domain and not is_valid_domain(domain):
        logger.debug("Ignoring invalid URL domain %s", domain)
        url = domain = None
    web_domain = extract_web_domain(snapshot)

    final_domain = web_domain or domain
    if final_domain:
        final_url = url or f"https://{final_domain}"
        logger.debug(
            "Real domain %s (from %s)",
            final_domain,
            "web domain" if web_domain else "URL",
        )
        return PageInfo(url=final_url, domain=final_domain, page_id=final_domain, title=final_domain)

    signature = create_page_signature(snapshot)
    page_id = PAGE_ID_PREFIX + hash_signature(signature)
    title = extract_page_title(snapshot, url=url, domain=domain) or page_id
    logger.debug("Synthetic page id %s (signature=%s, title=%s)", page_id, signature, title)
    return PageInfo(url=None, domain=None, page_id=page_id, title=title)
