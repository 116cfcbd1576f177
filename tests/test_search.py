"""Tests for semantic search interface."""

from __future__ import annotations

from unittest.mock import MagicMock

import numpy as np
import pytest

from templatechunker.index.search import (
    SearchResult,
    Searcher,
    calculate_confidence,
    distance_to_relevance,
)


def _row(record_id: str, distance: float, title: str = "Title") -> dict:
    return {
        "id": record_id,
        "document": f"# {title}",
        "metadata": {"chunkId": record_id.split(":")[-1], "title": title},
        "distance": distance,
    }


class TestDistanceToRelevance:
    """Test distance_to_relevance function."""

    def test_identical(self) -> None:
        assert distance_to_relevance(0.0) == 1.0

    def test_orthogonal(self) -> None:
        assert distance_to_relevance(1.0) == 0.5

    def test_opposite(self) -> None:
        assert distance_to_relevance(2.0) == 0.0

    def test_clamped(self) -> None:
        assert distance_to_relevance(-0.5) == 1.0
        assert distance_to_relevance(3.0) == 0.0


class TestCalculateConfidence:
    """Test calculate_confidence function."""

    def test_empty(self) -> None:
        assert calculate_confidence([]) == 0.0

    def test_mean_relevance(self) -> None:
        results = [
            SearchResult("a", "chunk-001", "A", 0.2, 0.9, ""),
            SearchResult("b", "chunk-002", "B", 0.6, 0.7, ""),
        ]

        assert calculate_confidence(results) == pytest.approx(0.8)


class TestSearcher:
    """Test Searcher class."""

    def test_search_simple(self) -> None:
        """Should perform search and return results."""
        mock_embedder = MagicMock()
        mock_embedder.embed_query.return_value = np.array([0.1, 0.2, 0.3])

        mock_store = MagicMock()
        mock_store.query.return_value = [_row("plan:chunk-001", 0.2, "Budget")]

        searcher = Searcher(mock_embedder, mock_store)
        results = searcher.search("how to fill the budget")

        assert results == [
            SearchResult(
                id="plan:chunk-001",
                chunk_id="chunk-001",
                title="Budget",
                distance=0.2,
                relevance=pytest.approx(0.9),
                content="# Budget",
            )
        ]
        mock_embedder.embed_query.assert_called_once_with("how to fill the budget")
        assert mock_store.query.call_args[1] == {"k": 3, "where": None}

    def test_search_filters(self) -> None:
        """Should translate template and tag filters into a metadata filter."""
        mock_embedder = MagicMock()
        mock_embedder.embed_query.return_value = np.array([0.1])
        mock_store = MagicMock()
        mock_store.query.return_value = []

        searcher = Searcher(mock_embedder, mock_store)
        searcher.search("query", top_k=5, template_id="plan", tag="finance")

        assert mock_store.query.call_args[1] == {
            "k": 5,
            "where": {"templateId": "plan", "tags": "finance"},
        }

    def test_search_multiple_results(self) -> None:
        mock_embedder = MagicMock()
        mock_embedder.embed_query.return_value = np.array([0.1, 0.2])
        mock_store = MagicMock()
        mock_store.query.return_value = [
            _row("plan:chunk-001", 0.1),
            _row("plan:chunk-004", 0.5),
            _row("plan:chunk-002", 0.9),
        ]

        results = Searcher(mock_embedder, mock_store).search("query")

        assert [r.chunk_id for r in results] == ["chunk-001", "chunk-004", "chunk-002"]
        assert results[0].relevance > results[1].relevance > results[2].relevance

    def test_search_empty_results(self) -> None:
        mock_embedder = MagicMock()
        mock_embedder.embed_query.return_value = np.array([0.1])
        mock_store = MagicMock()
        mock_store.query.return_value = []

        assert Searcher(mock_embedder, mock_store).search("no results query") == []

    def test_search_missing_metadata(self) -> None:
        mock_embedder = MagicMock()
        mock_embedder.embed_query.return_value = np.array([0.1])
        mock_store = MagicMock()
        mock_store.query.return_value = [
            {"id": "x", "document": "text", "metadata": None, "distance": 0.0}
        ]

        results = Searcher(mock_embedder, mock_store).search("query")

        assert results[0].chunk_id == ""
        assert results[0].title == ""
