# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for fillmap.tree — node model, snapshot loading, traversal."""

from __future__ import annotations

import json

import pytest

from fillmap import AutofillId
from fillmap.errors import SnapshotError
from fillmap.tree import (
    AssistSnapshot,
    HtmlInfo,
    ViewNode,
    WindowNode,
    collect_texts,
    iter_nodes,
    iter_snapshot_nodes,
)


def _texts(nodes) -> list[str | None]:
    return [n.text for n in nodes]


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------


class TestIterNodes:
    def test_pre_order_left_to_right(self):
        tree = ViewNode(
            text="root",
            children=(
                ViewNode(text="a", children=(ViewNode(text="a1"), ViewNode(text="a2"))),
                ViewNode(text="b"),
            ),
        )
        assert _texts(iter_nodes(tree)) == ["root", "a", "a1", "a2", "b"]

    def test_single_node(self):
        assert _texts(iter_nodes(ViewNode(text="only"))) == ["only"]

    def test_deep_tree_does_not_recurse(self):
        node = ViewNode(text="leaf")
        for i in range(5000):
            node = ViewNode(text=f"n{i}", children=(node,))
        nodes = list(iter_nodes(node))
        assert len(nodes) == 5001
        assert nodes[-1].text == "leaf"

    def test_snapshot_walks_windows_in_order(self):
        snap = AssistSnapshot(
            windows=(
                WindowNode(root=ViewNode(text="w1", children=(ViewNode(text="w1c"),))),
                WindowNode(root=ViewNode(text="w2")),
            )
        )
        assert _texts(iter_snapshot_nodes(snap)) == ["w1", "w1c", "w2"]

    def test_empty_snapshot(self):
        assert list(iter_snapshot_nodes(AssistSnapshot())) == []


class TestCollectTexts:
    def test_text_description_hint_in_walk_order(self):
        snap = AssistSnapshot.single(
            ViewNode(
                text="Title",
                children=(
                    ViewNode(content_description="desc", hint="hint"),
                    ViewNode(text="  "),
                ),
            )
        )
        assert collect_texts(snap) == ["Title", "desc", "hint"]


# ---------------------------------------------------------------------------
# HtmlInfo
# ---------------------------------------------------------------------------


class TestHtmlInfo:
    def test_get_is_case_insensitive(self):
        info = HtmlInfo(tag="INPUT", attributes=(("Type", "password"),))
        assert info.get("type") == "password"
        assert info.tag_lower == "input"

    def test_get_first_match_wins(self):
        info = HtmlInfo(tag="input", attributes=(("name", "first"), ("name", "second")))
        assert info.get("name") == "first"

    def test_get_missing(self):
        assert HtmlInfo(tag="input").get("type") is None

    def test_missing_tag(self):
        assert HtmlInfo().tag_lower == ""


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


class TestFromDict:
    def test_minimal_payload(self):
        snap = AssistSnapshot.from_dict({"windows": [{"root": {"text": "hi"}}]})
        assert len(snap.windows) == 1
        assert snap.windows[0].root.text == "hi"
        assert snap.package_name is None

    def test_positional_handles_are_pre_order(self):
        payload = {
            "windows": [
                {"root": {"children": [{"children": [{}]}, {}]}},
                {"root": {}},
            ]
        }
        snap = AssistSnapshot.from_dict(payload)
        handles = [str(n.autofill_id) for n in iter_snapshot_nodes(snap)]
        assert handles == ["node-0", "node-1", "node-2", "node-3", "node-4"]

    def test_explicit_handle_kept(self):
        snap = AssistSnapshot.from_dict({"windows": [{"root": {"autofill_id": "field-7"}}]})
        assert snap.windows[0].root.autofill_id == AutofillId("field-7")

    def test_attribute_mapping_shorthand(self):
        payload = {"windows": [{"root": {"html_info": {"tag": "input", "attributes": {"type": "password"}}}}]}
        snap = AssistSnapshot.from_dict(payload)
        assert snap.windows[0].root.html_info.get("type") == "password"

    def test_attribute_pairs(self):
        payload = {
            "windows": [
                {"root": {"html_info": {"tag": "input", "attributes": [["type", "email"], ["name", "login"]]}}}
            ]
        }
        info = AssistSnapshot.from_dict(payload).windows[0].root.html_info
        assert info.attributes == (("type", "email"), ("name", "login"))

    def test_nulls_mean_no_signal(self):
        payload = {"windows": [{"root": {"input_type": None, "autofill_hints": None, "children": None}}]}
        root = AssistSnapshot.from_dict(payload).windows[0].root
        assert root.input_type == 0
        assert root.autofill_hints == ()
        assert root.children == ()

    def test_unknown_keys_ignored(self):
        snap = AssistSnapshot.from_dict({"windows": [{"root": {"text": "x", "bogus": 1}}], "extra": True})
        assert snap.windows[0].root.text == "x"

    def test_invalid_shape_raises(self):
        with pytest.raises(SnapshotError, match="validation error"):
            AssistSnapshot.from_dict({"windows": "not-a-list"})

    def test_invalid_input_type_raises(self):
        with pytest.raises(SnapshotError):
            AssistSnapshot.from_dict({"windows": [{"root": {"input_type": "abc"}}]})

    def test_invalid_nested_child_raises(self):
        payload = {"windows": [{"root": {"children": [{"children": ["not-a-node"]}]}}]}
        with pytest.raises(SnapshotError, match="validation error"):
            AssistSnapshot.from_dict(payload)

    def test_deeply_nested_payload(self):
        node: dict = {"text": "leaf"}
        for i in range(1000):
            node = {"text": f"n{i}", "children": [node]}
        snap = AssistSnapshot.from_dict({"windows": [{"root": node}]})
        nodes = list(iter_snapshot_nodes(snap))
        assert len(nodes) == 1001
        assert nodes[0].text == "n999"
        assert nodes[-1].text == "leaf"
        assert str(nodes[-1].autofill_id) == "node-1000"

    def test_generated_handles_skip_explicit_ids(self):
        payload = {
            "windows": [
                {"root": {"children": [{}, {"autofill_id": "node-2"}, {}]}},
                {"root": {"autofill_id": "node-0"}},
            ]
        }
        snap = AssistSnapshot.from_dict(payload)
        handles = [str(n.autofill_id) for n in iter_snapshot_nodes(snap)]
        assert handles == ["node-1", "node-3", "node-2", "node-4", "node-0"]
        assert len(set(handles)) == len(handles)


class TestFromJson:
    def test_roundtrip_from_text(self):
        raw = json.dumps({"package_name": "com.android.chrome", "windows": [{"title": "t", "root": {}}]})
        snap = AssistSnapshot.from_json(raw)
        assert snap.package_name == "com.android.chrome"
        assert snap.windows[0].title == "t"

    def test_bad_json(self):
        with pytest.raises(SnapshotError, match="not valid JSON"):
            AssistSnapshot.from_json("{not json")

    def test_non_object(self):
        with pytest.raises(SnapshotError, match="must be an object"):
            AssistSnapshot.from_json("[1, 2, 3]")

    def test_deeply_nested_text(self):
        depth = 300
        root = '{"children": [' * depth + '{"text": "leaf"}' + "]}" * depth
        snap = AssistSnapshot.from_json('{"windows": [{"root": ' + root + "}]}")
        assert sum(1 for _ in iter_snapshot_nodes(snap)) == depth + 1

    def test_nesting_beyond_decoder_limit(self):
        depth = 1_000_000
        raw = '{"windows": [{"root": ' + '{"children": [' * depth + "{}" + "]}" * depth + "}]}"
        with pytest.raises(SnapshotError, match="nested too deeply"):
            AssistSnapshot.from_json(raw)


class TestAutofillId:
    def test_parse_roundtrip(self):
        handle = AutofillId("abc")
        assert AutofillId.parse(str(handle)) == handle

    def test_hashable(self):
        assert {AutofillId("a"): 1}[AutofillId("a")] == 1
