"""Core templatechunker data models.

Sections and fields stay plain JSON mappings so that their serialised size
(and any keys we do not know about) survive packing untouched. Everything the
packer produces is a dataclass with a ``to_dict`` that renders the camelCase
JSON shape written by the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TypedDict


class Field(TypedDict, total=False):
    id: str
    label: str
    type: str
    description: str
    required: bool
    aiHints: List[str]


class Section(TypedDict, total=False):
    id: str
    name: str
    description: str
    tags: List[str]
    fields: List[Field]


@dataclass(slots=True)
class OverlapContext:
    """Trailing fields of the previous chunk, carried for continuity."""

    source_id: str
    fields: List[Dict[str, Any]]

    def to_dict(self) -> Dict[str, Any]:
        return {"from": self.source_id, "fields": self.fields}


@dataclass(slots=True)
class ChunkContent:
    sections: List[Dict[str, Any]] = field(default_factory=list)
    context: Optional[OverlapContext] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"sections": self.sections}
        if self.context is not None:
            data["context"] = self.context.to_dict()
        return data


@dataclass(slots=True)
class Chunk:
    """Bounded-size group of sections.

    ``start_line``/``end_line`` are an estimated, chunk-local line range: every
    chunk starts at line 1.
    """

    id: str
    title: str = ""
    start_line: int = 1
    end_line: int = 0
    tags: List[str] = field(default_factory=list)
    content: ChunkContent = field(default_factory=ChunkContent)
    embedding: Optional[List[float]] = None

    @property
    def line_count(self) -> int:
        return self.end_line - self.start_line + 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "startLine": self.start_line,
            "endLine": self.end_line,
            "tags": list(self.tags),
            "embedding": self.embedding,
            "content": self.content.to_dict(),
        }


@dataclass(slots=True)
class ChunkIndex:
    """Lookup tables over a packed chunk sequence."""

    by_tag: Dict[str, List[str]] = field(default_factory=dict)
    by_section: Dict[str, List[str]] = field(default_factory=dict)
    by_id: Dict[str, Chunk] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "byTag": {tag: list(ids) for tag, ids in self.by_tag.items()},
            "bySection": {name: list(ids) for name, ids in self.by_section.items()},
            "byId": {chunk_id: chunk.to_dict() for chunk_id, chunk in self.by_id.items()},
        }


@dataclass(slots=True)
class ChunkStatistics:
    total_chunks: int = 0
    avg_lines_per_chunk: int = 0
    min_lines: int = 0
    max_lines: int = 0
    total_sections: int = 0
    total_fields: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "totalChunks": self.total_chunks,
            "avgLinesPerChunk": self.avg_lines_per_chunk,
            "minLines": self.min_lines,
            "maxLines": self.max_lines,
            "totalSections": self.total_sections,
            "totalFields": self.total_fields,
        }


@dataclass(slots=True)
class ChunkedTemplate:
    """Packer output: the source template plus chunks, index and metadata."""

    template: Dict[str, Any]
    metadata: Dict[str, Any]
    chunks: List[Chunk]
    index: ChunkIndex

    @property
    def name(self) -> str:
        return self.template.get("name", "")

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.template,
            "metadata": self.metadata,
            "chunks": [chunk.to_dict() for chunk in self.chunks],
            "index": self.index.to_dict(),
        }
