# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Read-only view-hierarchy model for one page visit.

Mirrors the host's assist structure: a snapshot holds windows, each window
holds a root ``ViewNode``, and nodes nest arbitrarily deep.  Walks are
iterative (explicit stack) so deeply nested trees cannot hit the
recursion limit; order is pre-order with children visited left to right.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from . import AutofillId
from .errors import SnapshotError
from .schemas import SnapshotSchema, ViewNodeSchema


@dataclass(frozen=True, slots=True)
class HtmlInfo:
    """HTML-like tag and ordered attribute pairs reported for web content."""

    tag: str | None = None
    attributes: tuple[tuple[str, str | None], ...] = ()

    @property
    def tag_lower(self) -> str:
        return (self.tag or "").lower()

    def get(self, name: str) -> str | None:
        """First attribute value whose name matches ``name`` (case-insensitive)."""
        wanted = name.lower()
        for key, value in self.attributes:
            if key and key.lower() == wanted:
                return value
        return None


@dataclass(frozen=True, slots=True)
class ViewNode:
    """A single element of the view hierarchy."""

    autofill_id: AutofillId | None = None
    text: str | None = None
    content_description: str | None = None
    hint: str | None = None
    id_entry: str | None = None
    class_name: str | None = None
    input_type: int = 0
    autofill_hints: tuple[str, ...] = ()
    html_info: HtmlInfo | None = None
    web_domain: str | None = None
    autofill_value: str | None = None  # current text value (save requests)
    children: tuple[ViewNode, ...] = ()


@dataclass(frozen=True, slots=True)
class WindowNode:
    root: ViewNode
    title: str | None = None


@dataclass(frozen=True, slots=True)
class AssistSnapshot:
    """Everything the host reports about the screen for one visit."""

    windows: tuple[WindowNode, ...] = ()
    package_name: str | None = None

    @classmethod
    def single(cls, root: ViewNode, *, package_name: str | None = None, title: str | None = None) -> AssistSnapshot:
        """Convenience constructor for the common one-window case."""
        return cls(windows=(WindowNode(root=root, title=title),), package_name=package_name)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AssistSnapshot:
        """Build a snapshot from a JSON-like payload.

        Nodes are validated one at a time with an explicit stack, so any
        nesting depth loads.  Nodes without an ``autofill_id`` get a
        generated handle ``node-<n>``, numbered in pre-order across all
        windows and skipping any handle the host already uses, so every
        node is addressable and no two nodes share one.

        Raises:
            SnapshotError: If the payload does not match the snapshot schema.
        """
        try:
            parsed = SnapshotSchema.model_validate(data)
            trees = [_validate_tree(w.root) for w in parsed.windows]
        except ValidationError as e:
            raise SnapshotError(f"Invalid snapshot: {e.error_count()} validation error(s)") from e

        handles = _HandleAllocator(s.autofill_id for tree in trees for s, _ in tree if s.autofill_id)
        windows = tuple(
            WindowNode(root=_build_tree(tree, handles), title=w.title)
            for w, tree in zip(parsed.windows, trees, strict=True)
        )
        return cls(windows=windows, package_name=parsed.package_name)

    @classmethod
    def from_json(cls, raw: str | bytes) -> AssistSnapshot:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise SnapshotError(f"Snapshot is not valid JSON: {e.msg}") from e
        except RecursionError as e:
            raise SnapshotError("Snapshot JSON is nested too deeply to decode") from e
        if not isinstance(data, dict):
            raise SnapshotError("Snapshot JSON must be an object")
        return cls.from_dict(data)


# Validated node plus the indexes of its children in the same pre-order list.
_ValidatedNode = tuple[ViewNodeSchema, list[int]]


class _HandleAllocator:
    """Hands out ``node-<n>`` handles that never collide with host-supplied ids."""

    __slots__ = ("_next", "_taken")

    def __init__(self, taken: Iterable[str]) -> None:
        self._taken = set(taken)
        self._next = 0

    def allocate(self) -> str:
        while True:
            handle = f"node-{self._next}"
            self._next += 1
            if handle not in self._taken:
                return handle


def _validate_tree(raw_root: object) -> list[_ValidatedNode]:
    """Validate every node under ``raw_root`` in pre-order without recursing."""
    nodes: list[_ValidatedNode] = []
    stack: list[tuple[object, int]] = [(raw_root, -1)]
    while stack:
        raw, parent = stack.pop()
        schema = ViewNodeSchema.model_validate(raw)
        index = len(nodes)
        nodes.append((schema, []))
        if parent >= 0:
            nodes[parent][1].append(index)
        stack.extend((child, index) for child in reversed(schema.children))
    return nodes


def _build_tree(nodes: list[_ValidatedNode], handles: _HandleAllocator) -> ViewNode:
    # Handles in pre-order; frozen nodes are then built leaves first.
    ids = [s.autofill_id or handles.allocate() for s, _ in nodes]
    built: list[ViewNode | None] = [None] * len(nodes)
    for index in range(len(nodes) - 1, -1, -1):
        s, child_indexes = nodes[index]
        html = None
        if s.html_info is not None:
            html = HtmlInfo(tag=s.html_info.tag, attributes=tuple(s.html_info.attributes))
        built[index] = ViewNode(
            autofill_id=AutofillId(ids[index]),
            text=s.text,
            content_description=s.content_description,
            hint=s.hint,
            id_entry=s.id_entry,
            class_name=s.class_name,
            input_type=s.input_type,
            autofill_hints=tuple(s.autofill_hints),
            html_info=html,
            web_domain=s.web_domain,
            autofill_value=s.autofill_value,
            children=tuple(built[c] for c in child_indexes),
        )
    return built[0]


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------


def iter_nodes(root: ViewNode) -> Iterator[ViewNode]:
    """Pre-order walk of ``root`` and all descendants, children in order."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        if node.children:
            stack.extend(reversed(node.children))


def iter_snapshot_nodes(snapshot: AssistSnapshot) -> Iterator[ViewNode]:
    """Pre-order walk over every window root, in window order."""
    for window in snapshot.windows:
        yield from iter_nodes(window.root)


def collect_texts(snapshot: AssistSnapshot) -> list[str]:
    """All non-blank text, content description and hint strings, in walk order."""
    texts: list[str] = []
    for node in iter_snapshot_nodes(snapshot):
        for value in (node.text, node.content_description, node.hint):
            if value and value.strip():
                texts.append(value)
    return texts
