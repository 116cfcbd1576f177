"""SQLite vector store for chunk embeddings."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Sequence, Tuple

import numpy as np

DEFAULT_COLLECTION = "template-chunks"


class SQLiteVectorStore:
    """Persistence layer for chunk records and their embeddings.

    Records live in a named collection and carry a JSON metadata object.
    ``where`` filters compare metadata keys for equality; when the stored
    value is a list the filter matches on membership instead.
    """

    def __init__(
        self,
        db_path: Path,
        *,
        dimension: int | None = None,
        collection: str = DEFAULT_COLLECTION,
    ) -> None:
        self.db_path = Path(db_path)
        self.dimension = dimension
        self.collection = collection
        self._conn = sqlite3.connect(self.db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._ensure_schema()

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            yield self._conn
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS records (
                    collection TEXT NOT NULL,
                    id TEXT NOT NULL,
                    document TEXT NOT NULL,
                    metadata TEXT NOT NULL,
                    embedding BLOB NOT NULL,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    PRIMARY KEY (collection, id)
                )
                """
            )

    def _where_clause(self, where: Mapping[str, Any] | None) -> Tuple[str, List[Any]]:
        clauses = ["collection = ?"]
        params: List[Any] = [self.collection]
        for key, value in (where or {}).items():
            clauses.append(
                "EXISTS (SELECT 1 FROM json_each(records.metadata, ?) AS item "
                "WHERE item.value = ?)"
            )
            params.extend([f'$."{key}"', value])
        return " AND ".join(clauses), params

    def insert_records(
        self,
        ids: Sequence[str],
        vectors: np.ndarray,
        metadatas: Sequence[Mapping[str, Any]],
        documents: Sequence[str],
    ) -> None:
        """Upsert a batch of records.

        Does not commit; call within ``transaction()``.
        """
        vectors = np.asarray(vectors, dtype="float32")
        if not (len(ids) == vectors.shape[0] == len(metadatas) == len(documents)):
            raise ValueError("ids, vectors, metadatas and documents length mismatch")
        if self.dimension is not None and len(ids) and vectors.shape[1] != self.dimension:
            raise ValueError(
                f"Expected vectors of dimension {self.dimension}, got {vectors.shape[1]}"
            )

        for record_id, vector, metadata, document in zip(ids, vectors, metadatas, documents):
            self._conn.execute(
                """
                INSERT OR REPLACE INTO records(collection, id, document, metadata, embedding)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    self.collection,
                    record_id,
                    document,
                    json.dumps(dict(metadata), ensure_ascii=True),
                    sqlite3.Binary(vector.tobytes()),
                ),
            )

    def delete_records(self, ids: Sequence[str]) -> int:
        """Delete records by id. Does not commit; call within ``transaction()``."""
        removed = 0
        for record_id in ids:
            cursor = self._conn.execute(
                "DELETE FROM records WHERE collection = ? AND id = ?",
                (self.collection, record_id),
            )
            removed += cursor.rowcount
        return removed

    def add(
        self,
        ids: Sequence[str],
        vectors: np.ndarray,
        metadatas: Sequence[Mapping[str, Any]],
        documents: Sequence[str],
    ) -> None:
        with self.transaction():
            self.insert_records(ids, vectors, metadatas, documents)

    def delete(self, ids: Sequence[str]) -> int:
        with self.transaction():
            return self.delete_records(ids)

    def get(self, where: Mapping[str, Any] | None = None) -> List[str]:
        """Return ids of records matching ``where``."""
        clause, params = self._where_clause(where)
        rows = self._conn.execute(
            f"SELECT id FROM records WHERE {clause} ORDER BY id", params
        ).fetchall()
        return [row["id"] for row in rows]

    def count(self) -> int:
        row = self._conn.execute(
            "SELECT COUNT(*) AS total FROM records WHERE collection = ?", (self.collection,)
        ).fetchone()
        return int(row["total"])

    def query(
        self,
        embedding: np.ndarray,
        *,
        k: int = 3,
        where: Mapping[str, Any] | None = None,
    ) -> List[Dict[str, Any]]:
        """Return up to ``k`` records ranked by cosine similarity to ``embedding``."""
        query = np.asarray(embedding, dtype="float32")
        clause, params = self._where_clause(where)
        rows = self._conn.execute(
            f"SELECT id, document, metadata, embedding FROM records WHERE {clause}", params
        ).fetchall()

        if not rows or k <= 0:
            return []

        embeddings = np.vstack([np.frombuffer(row["embedding"], dtype="float32") for row in rows])
        scores = embeddings @ query

        if k < len(scores):
            top_indices = np.argpartition(scores, -k)[-k:]
            top_indices = top_indices[np.argsort(scores[top_indices])[::-1]]
        else:
            top_indices = np.argsort(scores)[::-1]

        results: List[Dict[str, Any]] = []
        for idx in top_indices:
            row = rows[idx]
            results.append(
                {
                    "id": row["id"],
                    "document": row["document"],
                    "metadata": json.loads(row["metadata"]),
                    "distance": float(1.0 - scores[idx]),
                }
            )
        return results
