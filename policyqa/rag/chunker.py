"""Fixed-size text chunking for the RAG pipeline.

Chunks are contiguous and non-overlapping, cut purely by character count.
A chunk may end mid-word; joining all chunks gives back the input exactly.
"""
from dataclasses import dataclass
from typing import List

import structlog

from policyqa import config

logger = structlog.get_logger()


@dataclass
class TextChunk:
    """Represents a chunk of text with position information."""

    content: str
    char_start: int
    char_end: int
    chunk_index: int


class TextChunker:
    """Character-based chunker without overlap."""

    def __init__(self, chunk_size: int = None):
        """Initialize the text chunker.

        Args:
            chunk_size: Maximum chunk length in characters (default from config)
        """
        self.chunk_size = config.CHUNK_SIZE if chunk_size is None else chunk_size

        if self.chunk_size <= 0:
            raise ValueError(f"Chunk size must be positive, got {self.chunk_size}")

    def chunk_text(self, text: str) -> List[TextChunk]:
        """Split text into consecutive chunks of at most chunk_size characters.

        Args:
            text: Text to chunk

        Returns:
            List of TextChunk objects, empty for empty text
        """
        if not text:
            return []

        chunks = [
            TextChunk(
                content=text[start : start + self.chunk_size],
                char_start=start,
                char_end=min(start + self.chunk_size, len(text)),
                chunk_index=index,
            )
            for index, start in enumerate(range(0, len(text), self.chunk_size))
        ]

        logger.debug(
            "text_chunked",
            text_length=len(text),
            chunk_count=len(chunks),
            chunk_size=self.chunk_size,
        )

        return chunks

    def split(self, text: str) -> List[str]:
        """Split text and return only the chunk strings."""
        return [chunk.content for chunk in self.chunk_text(text)]

    def get_chunk_stats(self, chunks: List[TextChunk]) -> dict:
        """Get statistics about a set of chunks.

        Args:
            chunks: List of TextChunk objects

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
            }

        chunk_sizes = [len(c.content) for c in chunks]

        return {
            "chunk_count": len(chunks),
            "total_chars": sum(chunk_sizes),
            "avg_chunk_size": sum(chunk_sizes) // len(chunks),
            "min_chunk_size": min(chunk_sizes),
            "max_chunk_size": max(chunk_sizes),
        }


def split(text: str, chunk_size: int) -> List[str]:
    """Split text into fixed-size chunks (convenience function).

    Args:
        text: Text to split
        chunk_size: Maximum chunk length in characters, must be positive

    Returns:
        Ordered list of chunk strings
    """
    return TextChunker(chunk_size=chunk_size).split(text)
