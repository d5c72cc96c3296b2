"""Pytest configuration and shared fixtures."""
from pathlib import Path

import pytest

from policyqa.db import ChunkStore
from policyqa.models import Document
from policyqa.rag.codec import EmbeddingCodec

from tests.fakes import FakeEmbeddingProvider


@pytest.fixture
def store(tmp_path: Path, codec: EmbeddingCodec) -> ChunkStore:
    """Fresh SQLite chunk store in a temp directory, packing with the shared codec."""
    chunk_store = ChunkStore(db_path=tmp_path / "test.sqlite", codec=codec)
    chunk_store.init_database()
    return chunk_store


@pytest.fixture
def document(store: ChunkStore, tmp_path: Path) -> Document:
    """A registered plain-text document (file contents are up to the test)."""
    return store.insert_document(
        file_name="policy.txt",
        file_type="text/plain",
        file_path=str(tmp_path / "policy.txt"),
    )


@pytest.fixture
def embedding_provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def codec(embedding_provider: FakeEmbeddingProvider) -> EmbeddingCodec:
    return EmbeddingCodec(embedding_provider, element_width=8)
