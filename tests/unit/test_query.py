"""Tests for the query service, including ingest-to-answer runs."""
import json

import pytest

from policyqa.db import ChunkStore
from policyqa.errors import CodecError, ProviderError
from policyqa.extractor import TextExtractor
from policyqa.rag.chunker import TextChunker
from policyqa.rag.codec import EmbeddingCodec
from policyqa.rag.ingest import IngestPipeline
from policyqa.rag.prompt import PromptBuilder
from policyqa.rag.query import NO_DOCUMENTS_MESSAGE, QueryService

from tests.fakes import (
    FailingEmbeddingProvider,
    FakeEmbeddingProvider,
    FakeGenerativeModel,
    make_chunk,
)

APPROVED = json.dumps({
    "decision": "approved",
    "amount": 1200.0,
    "justification": "Covered under Section 2.",
    "clauses": [{"section": "Section 2", "text": "clause text", "relevanceScore": 0.9}],
})


def make_service(store, provider=None, generator=None, top_k=5):
    return QueryService(
        store=store,
        codec=EmbeddingCodec(provider or FakeEmbeddingProvider(), element_width=8),
        generator=generator or FakeGenerativeModel(APPROVED),
        prompt_builder=PromptBuilder(default_language="en"),
        top_k=top_k,
    )


@pytest.fixture
def populated_store(store, document):
    for i, vector in enumerate([[1.0, 0.0], [0.0, 1.0], [0.7, 0.7]]):
        store.append(make_chunk(f"Section {i} text", vector, document_id=document.id, chunk_index=i))
    return store


def test_successful_query_returns_enriched_result(populated_store, document):
    result = make_service(populated_store).process_query("Is it covered?", "en")

    assert result.decision == "approved"
    assert result.amount == 1200.0
    assert result.clauses[0].document_id == document.id
    assert result.clauses[0].page_range == "1-1"


@pytest.mark.parametrize("query", ["", "   ", None])
def test_blank_query_is_rejected(populated_store, query):
    generator = FakeGenerativeModel(APPROVED)

    result = make_service(populated_store, generator=generator).process_query(query, "en")

    assert result.decision == "error"
    assert generator.prompts == []


def test_empty_corpus_returns_no_documents_error(store):
    generator = FakeGenerativeModel(APPROVED)

    result = make_service(store, generator=generator).process_query("Is it covered?", "en")

    assert result.decision == "error"
    assert result.justification == NO_DOCUMENTS_MESSAGE
    assert generator.prompts == []


def test_embedding_failure_returns_error_result(populated_store):
    generator = FakeGenerativeModel(APPROVED)

    result = make_service(
        populated_store, provider=FailingEmbeddingProvider(), generator=generator
    ).process_query("q", "en")

    assert result.decision == "error"
    assert result.justification.startswith("Embedding generation failed")
    assert result.clauses == []
    assert generator.prompts == []


def test_generation_failure_returns_error_result(populated_store):
    generator = FakeGenerativeModel(error=ProviderError("model overloaded"))

    result = make_service(populated_store, generator=generator).process_query("q", "en")

    assert result.decision == "error"
    assert "language model" in result.justification
    assert result.clauses == []


def test_malformed_answer_returns_error_result(populated_store):
    generator = FakeGenerativeModel("I think it is approved.")

    result = make_service(populated_store, generator=generator).process_query("q", "en")

    assert result.decision == "error"
    assert result.clauses == []


def test_unexpected_exception_returns_generic_error(populated_store):
    generator = FakeGenerativeModel(error=RuntimeError("boom"))

    result = make_service(populated_store, generator=generator).process_query("q", "en")

    assert result.decision == "error"
    assert result.justification == "Processing failed due to an internal error"


def test_language_selects_template(populated_store):
    generator = FakeGenerativeModel(APPROVED)
    service = make_service(populated_store, generator=generator)

    service.process_query("q", "hi")
    service.process_query("q", "xx")

    assert generator.prompts[0].startswith("निम्नलिखित")
    assert generator.prompts[1].startswith("Analyze")


def test_prompt_holds_only_top_k_chunks_best_first(populated_store):
    generator = FakeGenerativeModel(APPROVED)
    provider = FakeEmbeddingProvider(default=[0.0, 1.0])

    make_service(populated_store, provider=provider, generator=generator, top_k=2).process_query("q", "en")

    prompt = generator.prompts[0]
    assert prompt.index("Section: 1]") < prompt.index("Section: 2]")
    assert "Section: 0]" not in prompt


def test_clause_only_bound_against_retrieved_chunks(populated_store):
    """A chunk that was not retrieved never provides provenance."""
    generator = FakeGenerativeModel(json.dumps({
        "decision": "rejected",
        "amount": 0.0,
        "justification": "Excluded.",
        "clauses": [{"section": "Section 0", "text": "x", "relevanceScore": 0.2}],
    }))
    provider = FakeEmbeddingProvider(default=[0.0, 1.0])

    result = make_service(populated_store, provider=provider, generator=generator, top_k=1).process_query("q", "en")

    assert result.clauses[0].document_id is None


def test_end_to_end_ingest_then_query(store, document, tmp_path):
    segments = [f"Section {i} clause text".ljust(30, ".") for i in range(5)]
    (tmp_path / "policy.txt").write_text("".join(segments), encoding="utf-8")

    unit_vectors = [[1.0 if j == i else 0.0 for j in range(5)] for i in range(5)]
    provider = FakeEmbeddingProvider(
        vectors={
            **dict(zip(segments, unit_vectors)),
            "Is section two covered?": [0.1, 0.1, 1.0, 0.1, 0.1],
        }
    )
    codec = EmbeddingCodec(provider, element_width=8)

    IngestPipeline(store, codec, TextExtractor(), TextChunker(chunk_size=30)).ingest_document(document)
    assert [c.text for c in store.list_all()] == segments

    generator = FakeGenerativeModel(APPROVED)
    service = QueryService(store=store, codec=codec, generator=generator, top_k=5)

    result = service.process_query("Is section two covered?", "en")

    prompt = generator.prompts[0]
    first_header = prompt.index("[Document: policy.txt, Section: ")
    assert prompt.startswith("[Document: policy.txt, Section: 2]", first_header)
    assert result.decision == "approved"
    assert result.clauses[0].section == "Section 2"
    assert result.clauses[0].document_id == document.id
    assert result.clauses[0].page_range == "1-1"


def test_store_packing_other_width_is_refused(tmp_path):
    store = ChunkStore(db_path=tmp_path / "narrow.sqlite", codec=EmbeddingCodec(element_width=4))

    with pytest.raises(CodecError):
        make_service(store)
