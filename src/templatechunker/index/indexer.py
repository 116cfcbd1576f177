"""Chunk indexing pipeline."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

import numpy as np

from templatechunker.embedding.encoder import EmbeddingModel
from templatechunker.index.storage import SQLiteVectorStore
from templatechunker.models import Chunk
from templatechunker.utils.text import chunk_to_text

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class IndexResult:
    indexed: int
    template_id: str
    collection: str
    status: str = "inserted"


def record_id(template_id: str, chunk: Chunk) -> str:
    return f"{template_id}:{chunk.id}"


def chunks_fingerprint(source: str, chunks: Sequence[Chunk], texts: Sequence[str]) -> str:
    """Digest of a source fingerprint and the chunks packed from it."""
    sha = hashlib.sha256(source.encode("utf-8"))
    for chunk, text in zip(chunks, texts):
        sha.update(b"\0")
        span = f"{chunk.id}:{chunk.start_line}-{chunk.end_line}:{','.join(chunk.tags)}"
        sha.update(span.encode("utf-8"))
        sha.update(b"\0")
        sha.update(text.encode("utf-8"))
    return sha.hexdigest()


def chunk_metadata(template_id: str, chunk: Chunk, fingerprint: str | None = None) -> Dict[str, Any]:
    metadata: Dict[str, Any] = {
        "templateId": template_id,
        "chunkId": chunk.id,
        "title": chunk.title,
        "tags": list(chunk.tags),
        "startLine": chunk.start_line,
        "endLine": chunk.end_line,
        "sectionCount": len(chunk.content.sections),
    }
    if fingerprint is not None:
        metadata["fingerprint"] = fingerprint
    return metadata


class ChunkIndexer:
    """Embeds chunks and persists them in the vector store.

    Embedding requests go out in batches of at most ``batch_size`` texts, so a
    large template never sends more than one batch to the model at a time.
    """

    def __init__(
        self,
        embedder: EmbeddingModel,
        store: SQLiteVectorStore,
        *,
        batch_size: int = 32,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self.embedder = embedder
        self.store = store
        self.batch_size = batch_size

    def _embed_batched(self, texts: Sequence[str]) -> np.ndarray:
        batches: List[np.ndarray] = []
        for start in range(0, len(texts), self.batch_size):
            batch = texts[start : start + self.batch_size]
            LOGGER.debug("Embedding chunks %d-%d of %d", start + 1, start + len(batch), len(texts))
            batches.append(np.asarray(self.embedder.embed(batch), dtype="float32"))
        return np.vstack(batches)

    def index_chunks(
        self,
        chunks: Sequence[Chunk],
        template_id: str,
        *,
        fingerprint: str | None = None,
    ) -> IndexResult:
        """Replace the stored records of ``template_id`` with ``chunks``.

        ``fingerprint`` identifies the source (usually the template file hash).
        It is combined with the chunk ids, line ranges, tags and rendered text,
        so the template is left untouched and reported as ``skipped`` only when
        both the source and the resulting chunks are the same as last time.
        """
        texts = [chunk_to_text(chunk) for chunk in chunks]
        if fingerprint is not None:
            fingerprint = chunks_fingerprint(fingerprint, chunks, texts)

        existing = self.store.get(where={"templateId": template_id})
        if fingerprint is not None and existing and len(existing) == len(chunks):
            unchanged = self.store.get(
                where={"templateId": template_id, "fingerprint": fingerprint}
            )
            if len(unchanged) == len(existing):
                LOGGER.info("Template %s unchanged, skipping", template_id)
                return IndexResult(0, template_id, self.store.collection, status="skipped")

        if not chunks:
            LOGGER.warning("No chunks to index for template %s", template_id)
            self.store.delete(existing)
            return IndexResult(0, template_id, self.store.collection, status="skipped")

        LOGGER.info("Indexing %d chunks for template %s", len(chunks), template_id)
        embeddings = self._embed_batched(texts)

        with self.store.transaction():
            self.store.delete_records(existing)
            self.store.insert_records(
                [record_id(template_id, chunk) for chunk in chunks],
                embeddings,
                [chunk_metadata(template_id, chunk, fingerprint) for chunk in chunks],
                texts,
            )

        return IndexResult(
            indexed=len(chunks),
            template_id=template_id,
            collection=self.store.collection,
            status="updated" if existing else "inserted",
        )

    def delete_template(self, template_id: str) -> int:
        """Remove every stored record of ``template_id``."""
        ids = self.store.get(where={"templateId": template_id})
        if not ids:
            return 0
        removed = self.store.delete(ids)
        LOGGER.info("Deleted %d chunks of template %s", removed, template_id)
        return removed
