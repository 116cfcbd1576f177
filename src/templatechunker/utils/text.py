"""Plain-text rendering of chunks for embedding."""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping

from templatechunker.models import Chunk


def render_field(field: Mapping[str, Any]) -> str:
    """Render one field as a markdown list item."""
    line = f"- **{field.get('label', '')}** ({field.get('type', '')})"
    if field.get("description"):
        line += f": {field['description']}"
    if field.get("required"):
        line += " [required]"
    hints = field.get("aiHints") or []
    if hints:
        line += f"\n  Hint: {hints[0]}"
    return line


def _render_fields(fields: Iterable[Mapping[str, Any]]) -> List[str]:
    return [render_field(field) for field in fields]


def chunk_to_text(chunk: Chunk) -> str:
    """Render a chunk as the markdown-ish text that gets embedded.

    Overlap context, when present, is placed ahead of the sections so the
    carried fields read as a lead-in.
    """
    parts = [f"# {chunk.title}", ""]

    if chunk.tags:
        parts += [f"Tags: {', '.join(chunk.tags)}", ""]

    context = chunk.content.context
    if context is not None and context.fields:
        parts.append(f"Context from {context.source_id}:")
        parts += _render_fields(context.fields)
        parts.append("")

    for section in chunk.content.sections:
        parts.append(f"## {section.get('name', '')}")
        if section.get("description"):
            parts += [section["description"], ""]
        fields = section.get("fields") or []
        if fields:
            parts.append("Fields:")
            parts += _render_fields(fields)
            parts.append("")

    return "\n".join(parts).strip()
