"""Sentence-based text chunking with overlap for the RAG pipeline.

Implements character-based limits to avoid tokenizer dependencies.
"""
import re
from typing import List, Optional

import structlog

from healsage import config

logger = structlog.get_logger()

# Split after runs of terminal punctuation that are followed by whitespace
SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


class TextChunker:
    """Greedy sentence accumulator with a trailing-character overlap."""

    def __init__(
        self,
        max_chunk_size: int = None,
        overlap: int = None,
        min_chunk_length: int = None,
    ):
        """Initialize the text chunker.

        Args:
            max_chunk_size: Maximum chunk size in characters (default from config)
            overlap: Characters carried over from the previous chunk (default from config)
            min_chunk_length: Chunks this long or shorter are discarded (default from config)
        """
        self.max_chunk_size = max_chunk_size if max_chunk_size is not None else config.CHUNK_SIZE
        self.overlap = overlap if overlap is not None else config.CHUNK_OVERLAP
        self.min_chunk_length = (
            min_chunk_length if min_chunk_length is not None else config.MIN_CHUNK_LENGTH
        )

        if self.max_chunk_size <= 0:
            raise ValueError(f"Chunk size must be positive, got {self.max_chunk_size}")

        if self.overlap < 0 or self.overlap >= self.max_chunk_size:
            raise ValueError(
                f"Overlap ({self.overlap}) must be between 0 and "
                f"chunk size ({self.max_chunk_size})"
            )

    def split_sentences(self, text: str) -> List[str]:
        """Split text into trimmed, non-empty sentences."""
        return [s.strip() for s in SENTENCE_BOUNDARY.split(text) if s.strip()]

    def chunk_text(self, text: str) -> List[str]:
        """Split text into overlapping chunks.

        Expects whitespace-normalized input (as produced by the extractor):
        sentences are rejoined with single spaces, so newlines between
        sentences do not survive.

        Args:
            text: Text to chunk

        Returns:
            Chunk strings in document order
        """
        if not text or not text.strip():
            return []

        chunks: List[str] = []
        current = ""

        for sentence in self.split_sentences(text):
            if len(current) + len(sentence) > self.max_chunk_size:
                if current:
                    chunks.append(current.strip())
                    tail = current[-self.overlap:] if self.overlap else ""
                    current = f"{tail} {sentence}" if tail else sentence
                else:
                    # A single sentence longer than the limit is kept whole
                    chunks.append(sentence)
                    current = ""
            else:
                current = f"{current} {sentence}" if current else sentence

        if current.strip():
            chunks.append(current.strip())

        kept = [c for c in chunks if len(c.strip()) > self.min_chunk_length]

        logger.debug(
            "text_chunked",
            text_length=len(text),
            chunk_count=len(kept),
            discarded=len(chunks) - len(kept),
        )

        return kept

    def get_chunk_stats(self, chunks: List[str]) -> dict:
        """Get statistics about a set of chunks.

        Args:
            chunks: List of chunk strings

        Returns:
            Dictionary with chunk statistics
        """
        if not chunks:
            return {
                "chunk_count": 0,
                "total_chars": 0,
                "avg_chunk_size": 0,
                "min_chunk_size": 0,
                "max_chunk_size": 0,
                "overlap": self.overlap,
            }

        chunk_sizes = [len(c) for c in chunks]

        return {
            "chunk_count": len(chunks),
            "total_chars": sum(chunk_sizes),
            "avg_chunk_size": sum(chunk_sizes) // len(chunks),
            "min_chunk_size": min(chunk_sizes),
            "max_chunk_size": max(chunk_sizes),
            "overlap": self.overlap,
        }


def chunk_text(
    text: str, max_chunk_size: Optional[int] = None, overlap: Optional[int] = None
) -> List[str]:
    """Chunk text with a one-off chunker (convenience function).

    Args:
        text: Text to chunk
        max_chunk_size: Maximum chunk size in characters
        overlap: Overlap between chunks in characters

    Returns:
        List of chunk strings
    """
    return TextChunker(max_chunk_size=max_chunk_size, overlap=overlap).chunk_text(text)
