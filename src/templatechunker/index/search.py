"""Semantic search interface."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from templatechunker.embedding.encoder import EmbeddingModel
from templatechunker.index.storage import SQLiteVectorStore

LOGGER = logging.getLogger(__name__)


def distance_to_relevance(distance: float) -> float:
    """Map a cosine distance (0 identical .. 2 opposite) onto 1 .. 0."""
    return max(0.0, min(1.0, 1.0 - distance / 2))


@dataclass(slots=True)
class SearchResult:
    id: str
    chunk_id: str
    title: str
    distance: float
    relevance: float
    content: str


def calculate_confidence(results: Sequence[SearchResult]) -> float:
    """Mean relevance of ``results``, 0.0 when there are none."""
    if not results:
        return 0.0
    return sum(result.relevance for result in results) / len(results)


class Searcher:
    """High-level API to query the vector store."""

    def __init__(self, embedder: EmbeddingModel, store: SQLiteVectorStore) -> None:
        self.embedder = embedder
        self.store = store

    def search(
        self,
        query: str,
        *,
        top_k: int = 3,
        template_id: str | None = None,
        tag: str | None = None,
    ) -> List[SearchResult]:
        where: Dict[str, Any] = {}
        if template_id:
            where["templateId"] = template_id
        if tag:
            where["tags"] = tag

        embedding = self.embedder.embed_query(query)
        rows = self.store.query(embedding, k=top_k, where=where or None)
        LOGGER.debug("Query %r matched %d chunks", query, len(rows))

        results: List[SearchResult] = []
        for row in rows:
            metadata = row.get("metadata") or {}
            results.append(
                SearchResult(
                    id=row["id"],
                    chunk_id=metadata.get("chunkId", ""),
                    title=metadata.get("title", ""),
                    distance=float(row["distance"]),
                    relevance=distance_to_relevance(float(row["distance"])),
                    content=row["document"],
                )
            )
        return results
