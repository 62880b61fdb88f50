"""
Display projection of AI summaries.

`render` is total over JSON-shaped input: every value maps to exactly one
node, and recursion depth is bounded by the input's nesting.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Literal, Union

from ..opportunities.schemas import SUMMARY_META_KEYS, JsonValue

LeafKind = Literal["na", "link", "preformatted", "text", "none", "empty"]


@dataclass(frozen=True, slots=True)
class Leaf:
    kind: LeafKind
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "text": self.text}


@dataclass(frozen=True, slots=True)
class BulletList:
    items: tuple[Leaf, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "bullets", "items": [i.to_dict() for i in self.items]}


@dataclass(frozen=True, slots=True)
class Item:
    label: str
    body: "DisplayNode"

    def to_dict(self) -> dict[str, Any]:
        return {"label": self.label, "body": self.body.to_dict()}


@dataclass(frozen=True, slots=True)
class ItemSequence:
    items: tuple[Item, ...]
    depth: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "items", "depth": self.depth, "items": [i.to_dict() for i in self.items]}


@dataclass(frozen=True, slots=True)
class FieldEntry:
    key: str
    title: str
    body: "DisplayNode"

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "title": self.title, "body": self.body.to_dict()}


@dataclass(frozen=True, slots=True)
class FieldSequence:
    fields: tuple[FieldEntry, ...]
    depth: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "fields", "depth": self.depth, "fields": [f.to_dict() for f in self.fields]}


DisplayNode = Union[Leaf, BulletList, ItemSequence, FieldSequence]

_CAMEL_BOUNDARY = re.compile(r"([a-z])([A-Z])")
_WORD_START = re.compile(r"\b\w")


def humanize_key(key: str) -> str:
    """`source_the_product` / `originalClosingDate` -> `Source The Product` / `Original Closing Date`."""
    s = str(key).replace("_", " ")
    s = _CAMEL_BOUNDARY.sub(r"\1 \2", s)
    return _WORD_START.sub(lambda m: m.group(0).upper(), s)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _primitive_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value)


def _render_string(value: str) -> Leaf:
    if value.startswith("http://") or value.startswith("https://"):
        return Leaf("link", value)
    if "\n" in value or "\r" in value:
        return Leaf("preformatted", value)
    return Leaf("text", value)


def render(value: JsonValue, depth: int = 0) -> DisplayNode:
    if value is None:
        return Leaf("na", "N/A")

    if isinstance(value, str):
        return _render_string(value)

    if isinstance(value, bool) or _is_number(value):
        return Leaf("text", _primitive_text(value))

    if isinstance(value, (list, tuple)):
        if not value:
            return Leaf("none", "None")
        if all(isinstance(v, str) or _is_number(v) for v in value):
            return BulletList(items=tuple(Leaf("text", _primitive_text(v)) for v in value))
        return ItemSequence(
            items=tuple(Item(label=f"Item {i}", body=render(v, depth + 1)) for i, v in enumerate(value, start=1)),
            depth=depth,
        )

    if isinstance(value, dict):
        if not value:
            return Leaf("empty", "Empty")
        return FieldSequence(
            fields=tuple(
                FieldEntry(key=str(k), title=humanize_key(str(k)), body=render(v, depth + 1))
                for k, v in value.items()
            ),
            depth=depth,
        )

    return Leaf("text", str(value))


def partition_summary(summary: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    meta: dict[str, Any] = {}
    sections: dict[str, Any] = {}
    for k, v in (summary or {}).items():
        if k in SUMMARY_META_KEYS:
            meta[k] = v
        else:
            sections[k] = v
    return meta, sections


def render_summary(summary: dict[str, Any]) -> dict[str, Any]:
    meta, sections = partition_summary(summary)
    return {
        "meta": meta,
        "sections": [
            {"key": k, "title": humanize_key(k), "body": render(v).to_dict()}
            for k, v in sections.items()
        ],
    }
