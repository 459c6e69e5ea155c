"""In-memory vector store with brute-force cosine similarity search.

Handles:
- Chunk record storage
- Cosine similarity top-k retrieval
- Index statistics
"""
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np
import structlog

from healsage import config

logger = structlog.get_logger()


@dataclass(frozen=True)
class Chunk:
    """A passage of a document with its embedding.

    ``metadata`` holds file_name, file_id, total_chunks and processed_at.
    """

    document_id: str
    content: str
    embedding: List[float]
    chunk_index: int
    metadata: Dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def file_name(self) -> Optional[str]:
        return self.metadata.get("file_name")


@dataclass(frozen=True)
class SearchResult:
    """A retrieved chunk with its cosine similarity to the query."""

    chunk: Chunk
    score: float


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between two vectors.

    Returns 0.0 when the vectors differ in length, are empty, or either has
    zero norm.
    """
    if len(a) != len(b) or len(a) == 0:
        return 0.0

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)

    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    similarity = float(np.dot(va, vb) / (norm_a * norm_b))
    return max(-1.0, min(1.0, similarity))


class ChunkRepository(ABC):
    """Storage interface for embedded chunks."""

    @abstractmethod
    def insert(self, chunk: Chunk) -> Chunk:
        """Store a chunk."""

    def insert_many(self, chunks: Iterable[Chunk]) -> List[Chunk]:
        return [self.insert(chunk) for chunk in chunks]

    @abstractmethod
    def search(self, query_embedding: Sequence[float], k: int = None) -> List[SearchResult]:
        """Return up to k chunks ordered by descending similarity."""

    @abstractmethod
    def list_all(self) -> List[Chunk]:
        """Return every stored chunk."""

    @abstractmethod
    def get_document_chunks(self, document_id: str) -> List[Chunk]:
        """Return a document's chunks ordered by chunk index."""

    def get_stats(self) -> Dict[str, int]:
        """Aggregate counts over the stored chunks."""
        chunks = self.list_all()
        return {
            "totalChunks": len(chunks),
            "uniqueDocuments": len({c.document_id for c in chunks}),
        }


class InMemoryVectorStore(ChunkRepository):
    """Dict-backed chunk store. Search is an O(N*D) scan with no ANN index."""

    def __init__(self):
        self._chunks: Dict[str, Chunk] = {}

    def __len__(self) -> int:
        return len(self._chunks)

    def insert(self, chunk: Chunk) -> Chunk:
        self._chunks[chunk.id] = chunk
        return chunk

    def insert_many(self, chunks: Iterable[Chunk]) -> List[Chunk]:
        stored = super().insert_many(chunks)
        logger.info("chunks_inserted", count=len(stored), total_chunks=len(self._chunks))
        return stored

    def search(self, query_embedding: Sequence[float], k: int = None) -> List[SearchResult]:
        """Search using cosine similarity.

        Args:
            query_embedding: Query vector
            k: Number of results to return (default from config)

        Returns:
            Search results sorted by score, best first
        """
        if k is None:
            k = config.RETRIEVAL_TOP_K

        if k <= 0:
            return []

        results = [
            SearchResult(chunk=chunk, score=cosine_similarity(query_embedding, chunk.embedding))
            for chunk in self._chunks.values()
            if chunk.embedding
        ]
        results.sort(key=lambda r: r.score, reverse=True)

        logger.debug(
            "vector_search_completed",
            candidates=len(results),
            top_k=k,
            top_score=results[0].score if results else None,
        )

        return results[:k]

    def list_all(self) -> List[Chunk]:
        return list(self._chunks.values())

    def get_document_chunks(self, document_id: str) -> List[Chunk]:
        return sorted(
            (c for c in self._chunks.values() if c.document_id == document_id),
            key=lambda c: c.chunk_index,
        )
