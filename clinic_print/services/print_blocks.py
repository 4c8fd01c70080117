# FILE: clinic_print/services/print_blocks.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Sequence, Tuple, Union

from clinic_print.utils.text import esc, present

NA = "N/A"


def text_or(v: Any, fallback: str = NA) -> str:
    """Printable text for `v`; `fallback` for None/blank/placeholder values."""
    if isinstance(v, (list, tuple)):
        joined = ", ".join(str(x) for x in v if present(x))
        return joined or fallback
    return str(v).strip() if present(v) else fallback


# -----------------------------
# Blocks
# -----------------------------
@dataclass(frozen=True)
class Field:
    label: str
    value: str

    @classmethod
    def of(cls, label: str, value: Any, fallback: str = NA) -> "Field":
        return cls(label=label, value=text_or(value, fallback))


@dataclass(frozen=True)
class FieldGrid:
    fields: Tuple[Field, ...]


@dataclass(frozen=True)
class Paragraph:
    text: str
    muted: bool = False


@dataclass(frozen=True)
class Callout:
    title: str
    lines: Tuple[str, ...]


@dataclass(frozen=True)
class ItemBlock:
    """Numbered/titled sub-block: one medication, one lab test, one visit."""
    title: str
    fields: Tuple[Field, ...] = ()
    css_class: str = "item"


@dataclass(frozen=True)
class Section:
    title: str
    children: Tuple["Block", ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Empty:
    """Placeholder for an optional block that has nothing to show."""


Block = Union[Field, FieldGrid, Paragraph, Callout, ItemBlock, Section, Empty]


def fields(*pairs: Tuple[str, Any], fallback: str = NA) -> Tuple[Field, ...]:
    return tuple(Field.of(label, value, fallback) for label, value in pairs)


def optional_fields(*pairs: Tuple[str, Any]) -> Tuple[Field, ...]:
    """Only the pairs whose value is present."""
    return tuple(Field.of(label, value) for label, value in pairs if present(value))


def section_or_empty(title: str, children: Sequence[Block]) -> Block:
    return Section(title=title, children=tuple(children)) if children else Empty()


# -----------------------------
# HTML serializer
# -----------------------------
def _field_html(f: Field) -> str:
    return (f"<div class='info-item'><span class='label'>{esc(f.label)}:</span> "
            f"{esc(f.value)}</div>")


def _block_html(b: Block) -> str:
    if isinstance(b, Field):
        return (f"<div class='consultation-field'>"
                f"<div class='field-label'>{esc(b.label.upper())}:</div>"
                f"<div class='field-value'>{esc(b.value)}</div></div>")
    if isinstance(b, FieldGrid):
        inner = "".join(_field_html(f) for f in b.fields)
        return f"<div class='info-grid'>{inner}</div>"
    if isinstance(b, Paragraph):
        cls = "para muted" if b.muted else "para"
        return f"<div class='{cls}'>{esc(b.text)}</div>"
    if isinstance(b, Callout):
        lines = "".join(f"<li>{esc(x)}</li>" for x in b.lines)
        return (f"<div class='callout'><div class='field-label'>{esc(b.title)}</div>"
                f"<ul>{lines}</ul></div>")
    if isinstance(b, ItemBlock):
        rows = "".join(
            f"<div class='item-detail'><strong>{esc(f.label)}:</strong> {esc(f.value)}</div>"
            for f in b.fields)
        return (f"<div class='{esc(b.css_class)}'>"
                f"<div class='item-title'>{esc(b.title)}</div>{rows}</div>")
    if isinstance(b, Section):
        inner = "".join(_block_html(c) for c in b.children)
        return (f"<div class='content-section'>"
                f"<div class='content-title'>{esc(b.title)}</div>{inner}</div>")
    return ""


def blocks_to_html(blocks: Sequence[Block]) -> str:
    return "\n".join(_block_html(b) for b in blocks)


def walk_text(blocks: Sequence[Block]) -> List[str]:
    """Flat list of every visible string, in document order."""
    out: List[str] = []
    for b in blocks:
        if isinstance(b, Field):
            out.extend([b.label, b.value])
        elif isinstance(b, FieldGrid):
            for f in b.fields:
                out.extend([f.label, f.value])
        elif isinstance(b, Paragraph):
            out.append(b.text)
        elif isinstance(b, Callout):
            out.append(b.title)
            out.extend(b.lines)
        elif isinstance(b, ItemBlock):
            out.append(b.title)
            for f in b.fields:
                out.extend([f.label, f.value])
        elif isinstance(b, Section):
            out.append(b.title)
            out.extend(walk_text(b.children))
    return out
