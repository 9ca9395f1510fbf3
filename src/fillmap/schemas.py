# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Pydantic schemas for assist-structure snapshots delivered as JSON.

Every field is optional with a permissive default: snapshots come from
untrusted hosts and missing data means "no signal", never an error.
Unknown keys are ignored.

Node schemas validate one node at a time: ``children`` and window
``root`` stay raw here and are validated by the iterative tree builder
in ``tree.py``, so nesting depth is not bounded by the validator.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class HtmlInfoSchema(BaseModel):
    """HTML tag plus ordered attribute pairs."""

    model_config = ConfigDict(extra="ignore")

    tag: str | None = Field(None, description="Lower- or mixed-case tag name, e.g. 'input'")
    attributes: list[tuple[str, str | None]] = Field(default_factory=list, description="Ordered (name, value) pairs")

    @field_validator("attributes", mode="before")
    @classmethod
    def _accept_mapping(cls, value: object) -> object:
        # {"type": "password"} is accepted as shorthand for [["type", "password"]]
        if isinstance(value, dict):
            return list(value.items())
        return value if value is not None else []


class ViewNodeSchema(BaseModel):
    """One node of the view hierarchy."""

    model_config = ConfigDict(extra="ignore")

    autofill_id: str | None = None
    text: str | None = None
    content_description: str | None = None
    hint: str | None = None
    id_entry: str | None = None
    class_name: str | None = None
    input_type: int = 0
    autofill_hints: list[str] = Field(default_factory=list)
    html_info: HtmlInfoSchema | None = None
    web_domain: str | None = None
    autofill_value: str | None = None
    children: list[Any] = Field(default_factory=list, description="Raw child payloads, validated per node")

    @field_validator("autofill_hints", "children", mode="before")
    @classmethod
    def _none_is_empty(cls, value: object) -> object:
        return [] if value is None else value

    @field_validator("input_type", mode="before")
    @classmethod
    def _none_is_zero(cls, value: object) -> object:
        return 0 if value is None else value


class WindowNodeSchema(BaseModel):
    """A window with an optional title and a root view."""

    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    root: Any = Field(default_factory=dict, description="Raw root node payload")


class SnapshotSchema(BaseModel):
    """A full assist structure for one page visit."""

    model_config = ConfigDict(extra="ignore")

    package_name: str | None = Field(None, description="Hosting application, e.g. com.android.chrome")
    windows: list[WindowNodeSchema] = Field(default_factory=list)
