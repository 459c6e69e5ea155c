"""Tests for the in-memory vector store and cosine similarity."""
import math

import pytest

from healsage.rag.store import Chunk, InMemoryVectorStore, cosine_similarity
from tests.conftest import make_chunk


class TestCosineSimilarity:

    def test_self_similarity_is_one(self):
        v = [0.3, -1.2, 4.0, 0.0001]
        assert cosine_similarity(v, v) == pytest.approx(1.0)

    def test_symmetric(self):
        a = [1.0, 2.0, 3.0]
        b = [-2.0, 0.5, 1.0]
        assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))

    def test_opposite_and_orthogonal(self):
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_bounded(self):
        a = [1e-8, 3.0, 7.5]
        b = [2e-8, 6.0, 15.0]
        assert -1.0 <= cosine_similarity(a, b) <= 1.0

    def test_zero_vector_scores_zero(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0
        assert cosine_similarity([1.0, 2.0], [0.0, 0.0]) == 0.0

    def test_dimension_mismatch_scores_zero(self):
        assert cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0]) == 0.0

    def test_empty_vectors_score_zero(self):
        assert cosine_similarity([], []) == 0.0

    def test_matches_manual_formula(self):
        a = [1.0, 2.0, 2.0]
        b = [2.0, 0.0, 1.0]
        expected = (1 * 2 + 2 * 0 + 2 * 1) / (3.0 * math.sqrt(5))
        assert cosine_similarity(a, b) == pytest.approx(expected)


class TestInMemoryVectorStore:

    @pytest.fixture
    def populated_store(self, vector_store):
        vector_store.insert_many([
            make_chunk("Insulin lowers blood sugar in diabetes.", chunk_index=0),
            make_chunk("Heart disease and heart failure overview.", chunk_index=1),
            make_chunk("Sleep hygiene tips for better sleep.", document_id="doc-2"),
            make_chunk("Fever management in children.", document_id="doc-3"),
        ])
        return vector_store

    def test_search_sorted_by_descending_similarity(self, populated_store):
        results = populated_store.search([0.0, 0.0, 1.0, 0.0, 0.0, 0.0], k=4)

        scores = [r.score for r in results]
        assert scores == sorted(scores, reverse=True)
        assert results[0].chunk.content.startswith("Heart disease")

    def test_search_never_exceeds_k(self, populated_store):
        assert len(populated_store.search([1.0] * 6, k=2)) == 2
        assert len(populated_store.search([1.0] * 6, k=10)) == 4
        assert populated_store.search([1.0] * 6, k=0) == []

    def test_search_default_k(self, vector_store):
        for i in range(8):
            vector_store.insert(make_chunk(f"Blood test number {i}", chunk_index=i))

        assert len(vector_store.search([0.0, 0.0, 0.0, 1.0, 0.0, 0.0])) == 5

    def test_search_skips_chunks_without_embedding(self, populated_store):
        populated_store.insert(
            Chunk(document_id="doc-9", content="No vector here.", embedding=[], chunk_index=0)
        )

        results = populated_store.search([1.0] * 6, k=10)

        assert len(results) == 4
        assert all(r.chunk.embedding for r in results)

    def test_search_empty_store(self, vector_store):
        assert vector_store.search([1.0, 0.0], k=5) == []

    def test_document_chunks_ordered_by_index(self, vector_store):
        vector_store.insert(make_chunk("second", chunk_index=1))
        vector_store.insert(make_chunk("first", chunk_index=0))
        vector_store.insert(make_chunk("other", document_id="doc-2"))

        chunks = vector_store.get_document_chunks("doc-1")

        assert [c.content for c in chunks] == ["first", "second"]

    def test_stats(self, populated_store):
        assert populated_store.get_stats() == {"totalChunks": 4, "uniqueDocuments": 3}
        assert len(populated_store.list_all()) == 4
