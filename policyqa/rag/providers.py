"""Capabilities the pipeline consumes from its collaborators."""
from typing import List, Protocol, Sequence

from policyqa.models import Chunk


class EmbeddingProvider(Protocol):
    def embed(self, text: str) -> List[float]:
        ...


class GenerativeModel(Protocol):
    def generate(self, prompt: str) -> str:
        ...


class ChunkStore(Protocol):
    """Append-only store of ingested chunks."""

    def append(self, chunk: Chunk) -> Chunk:
        ...

    def append_many(self, chunks: Sequence[Chunk]) -> Sequence[Chunk]:
        ...

    def list_all(self) -> Sequence[Chunk]:
        ...
