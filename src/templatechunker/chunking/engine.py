"""Greedy packing of template sections into bounded-size chunks."""

from __future__ import annotations

import json
import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from templatechunker.config import ChunkingConfig
from templatechunker.models import (
    Chunk,
    ChunkContent,
    ChunkedTemplate,
    ChunkIndex,
    ChunkStatistics,
    OverlapContext,
)

LOGGER = logging.getLogger(__name__)


def format_chunk_id(index: int) -> str:
    """Return the id of the chunk at zero-based position ``index``."""
    return f"chunk-{index + 1:03d}"


def _merge_tags(current: List[str], extra: Iterable[str]) -> List[str]:
    merged = list(current)
    for tag in extra:
        if tag not in merged:
            merged.append(tag)
    return merged


class ChunkingEngine:
    """Splits a template into chunks of at most ``max_chunk_size`` estimated lines.

    Sections are placed whole whenever they fit; a section that is larger than
    the bound on its own is cut into field groups, each emitted as a separate
    chunk. The engine holds no state between calls.
    """

    def __init__(self, config: ChunkingConfig | None = None) -> None:
        self.config = config or ChunkingConfig()

    @property
    def max_chunk_size(self) -> int:
        return self.config.max_chunk_size

    def chunk_template(self, template: Mapping[str, Any]) -> ChunkedTemplate:
        """Pack ``template["sections"]`` into chunks and index the result."""
        sections = template["sections"]
        LOGGER.info("Chunking template: %s (%d sections)", template.get("name", ""), len(sections))

        chunks: List[Chunk] = []
        open_sections: List[Dict[str, Any]] = []
        open_tags: List[str] = []
        open_title = ""
        running = 0

        for position, section in enumerate(sections, start=1):
            size = self.estimate_lines(section)
            LOGGER.debug("Section %d: %r (%d lines)", position, section.get("name"), size)

            if running + size <= self.max_chunk_size:
                open_sections.append(section)
                open_tags = _merge_tags(open_tags, section.get("tags") or [])
                if not open_title:
                    open_title = section.get("name", "")
                running += size
            elif size > self.max_chunk_size:
                if open_sections:
                    self._emit(chunks, open_sections, open_tags, open_title, running)
                sub_chunks = self.split_large_section(section, len(chunks))
                chunks.extend(sub_chunks)
                LOGGER.debug("Large section split into %d sub-chunks", len(sub_chunks))
                open_sections, open_tags, open_title, running = [], [], "", 0
            else:
                self._emit(chunks, open_sections, open_tags, open_title, running)
                open_sections = [section]
                open_tags = _merge_tags([], section.get("tags") or [])
                open_title = section.get("name", "")
                running = size

        if open_sections:
            self._emit(chunks, open_sections, open_tags, open_title, running)

        metadata = {
            **(template.get("metadata") or {}),
            "totalChunks": len(chunks),
            "chunkSize": self.max_chunk_size,
            "chunkedAt": datetime.now(timezone.utc).isoformat(),
        }
        LOGGER.info("Chunking complete: %d chunks created", len(chunks))
        return ChunkedTemplate(
            template=dict(template),
            metadata=metadata,
            chunks=chunks,
            index=self.build_index(chunks),
        )

    def _emit(
        self,
        chunks: List[Chunk],
        sections: List[Dict[str, Any]],
        tags: List[str],
        title: str,
        line_count: int,
    ) -> None:
        chunk = Chunk(
            id=format_chunk_id(len(chunks)),
            title=title,
            tags=list(tags),
            content=ChunkContent(sections=list(sections)),
        )
        chunk.end_line = chunk.start_line + line_count - 1
        chunks.append(chunk)
        LOGGER.debug("Chunk %s completed (%d lines)", chunk.id, line_count)

    @staticmethod
    def estimate_lines(obj: Any) -> int:
        """Number of lines in the 2-space indented JSON rendering of ``obj``."""
        return json.dumps(obj, indent=2, ensure_ascii=False).count("\n") + 1

    def split_large_section(self, section: Mapping[str, Any], start_index: int) -> List[Chunk]:
        """Cut an oversized section into consecutive field groups, one chunk each.

        A section without fields produces no chunks.
        """
        fields = section.get("fields") or []
        if not fields:
            LOGGER.warning("Oversized section %r has no fields to split", section.get("name"))
            return []

        parts_needed = math.ceil(self.estimate_lines(section) / self.max_chunk_size)
        fields_per_chunk = math.ceil(len(fields) / parts_needed)

        chunks: List[Chunk] = []
        for part, offset in enumerate(range(0, len(fields), fields_per_chunk), start=1):
            sub_section = {
                **section,
                "id": f"{section.get('id')}-part-{part}",
                "name": f"{section.get('name')} ({self.config.part_label} {part})",
                "fields": list(fields[offset : offset + fields_per_chunk]),
            }
            chunk = Chunk(
                id=format_chunk_id(start_index + len(chunks)),
                title=sub_section["name"],
                tags=list(section.get("tags") or []),
                content=ChunkContent(sections=[sub_section]),
            )
            chunk.end_line = chunk.start_line + self.estimate_lines(sub_section) - 1
            chunks.append(chunk)
        return chunks

    @staticmethod
    def build_index(chunks: Sequence[Chunk]) -> ChunkIndex:
        index = ChunkIndex()
        for chunk in chunks:
            index.by_id[chunk.id] = chunk
            for tag in chunk.tags:
                index.by_tag.setdefault(tag, []).append(chunk.id)
            for section in chunk.content.sections:
                index.by_section.setdefault(section.get("name", ""), []).append(chunk.id)
        return index

    def add_overlap(self, chunks: Sequence[Chunk]) -> Sequence[Chunk]:
        """Attach the tail of each chunk's last section to the following chunk.

        Recomputes ``content.context`` from scratch on every call, so running it
        again replaces rather than accumulates.
        """
        if self.config.overlap_size == 0 or len(chunks) < 2:
            return chunks

        carry = math.ceil(self.config.overlap_size / 10)
        for previous, current in zip(chunks, chunks[1:]):
            if not previous.content.sections:
                continue
            last_fields = previous.content.sections[-1].get("fields") or []
            tail = list(last_fields[-carry:])
            if tail:
                current.content.context = OverlapContext(source_id=previous.id, fields=tail)
        return chunks

    @staticmethod
    def get_statistics(chunks: Sequence[Chunk]) -> ChunkStatistics:
        """Aggregate line and content counts; all zeros for an empty sequence."""
        if not chunks:
            return ChunkStatistics()

        spans = [chunk.line_count for chunk in chunks]
        sections = [section for chunk in chunks for section in chunk.content.sections]
        return ChunkStatistics(
            total_chunks=len(chunks),
            # round half up
            avg_lines_per_chunk=math.floor(sum(spans) / len(chunks) + 0.5),
            min_lines=min(spans),
            max_lines=max(spans),
            total_sections=len(sections),
            total_fields=sum(len(section.get("fields") or []) for section in sections),
        )
