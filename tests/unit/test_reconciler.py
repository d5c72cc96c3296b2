"""Tests for parsing model answers and binding clauses to source chunks."""
import json

import pytest

from policyqa.errors import ParseError
from policyqa.rag.reconciler import ResponseReconciler, strip_code_fence

from tests.fakes import make_chunk


def answer(**overrides) -> str:
    payload = {
        "decision": "approved",
        "amount": 25000.0,
        "justification": "Procedure is covered after the waiting period.",
        "clauses": [
            {"section": "Exclusion 4.2", "text": "Cosmetic surgery", "relevanceScore": 0.92},
        ],
    }
    payload.update(overrides)
    return json.dumps(payload)


@pytest.fixture
def reconciler() -> ResponseReconciler:
    return ResponseReconciler()


def test_well_formed_answer_is_parsed(reconciler):
    result = reconciler.parse(answer(), [])

    assert result.decision == "approved"
    assert result.amount == 25000.0
    assert result.justification.startswith("Procedure is covered")
    assert [c.section for c in result.clauses] == ["Exclusion 4.2"]
    assert result.clauses[0].relevance_score == pytest.approx(0.92)


def test_integer_amount_accepted(reconciler):
    assert reconciler.parse(answer(amount=100), []).amount == 100.0


def test_clause_bound_to_chunk_containing_section(reconciler):
    chunk = make_chunk(
        "... see Exclusion 4.2 for cosmetic procedures ...",
        [1.0],
        document_id=42,
        start_page=3,
        end_page=5,
    )

    clause = reconciler.parse(answer(), [chunk]).clauses[0]

    assert clause.document_id == 42
    assert clause.page_range == "3-5"


def test_clause_left_unbound_when_no_chunk_matches(reconciler):
    chunk = make_chunk("Waiting period of 30 days.", [1.0], document_id=42)

    clause = reconciler.parse(answer(), [chunk]).clauses[0]

    assert clause.document_id is None
    assert clause.page_range is None


def test_matching_is_case_sensitive(reconciler):
    chunk = make_chunk("see exclusion 4.2", [1.0], document_id=42)

    clause = reconciler.parse(answer(), [chunk]).clauses[0]

    assert clause.document_id is None


def test_first_matching_chunk_in_retrieval_order_wins(reconciler):
    first = make_chunk("Exclusion 4.2 (summary)", [1.0], document_id=1, start_page=9, end_page=9)
    second = make_chunk("Exclusion 4.2 full text", [1.0], document_id=2, start_page=1, end_page=2)

    clause = reconciler.parse(answer(), [first, second]).clauses[0]

    assert clause.document_id == 1
    assert clause.page_range == "9-9"


def test_each_clause_matched_independently(reconciler):
    raw = answer(clauses=[
        {"section": "Section 2", "text": "a", "relevanceScore": 0.5},
        {"section": "Section 9", "text": "b", "relevanceScore": 0.4},
        {"section": "Section 3", "text": "c", "relevanceScore": 0.3},
    ])
    chunks = [
        make_chunk("Section 3 text", [1.0], document_id=3, start_page=3, end_page=3),
        make_chunk("Section 2 text", [1.0], document_id=2, start_page=2, end_page=2),
    ]

    clauses = reconciler.parse(raw, chunks).clauses

    assert [c.document_id for c in clauses] == [2, None, 3]
    assert [c.page_range for c in clauses] == ["2-2", None, "3-3"]


def test_fenced_json_is_accepted(reconciler):
    result = reconciler.parse(f"```json\n{answer()}\n```", [])
    assert result.decision == "approved"


@pytest.mark.parametrize(
    "raw",
    [
        "not json at all",
        '{"decision": "approved", "amount": 1.0',
        "",
        "[]",
        "Sure! Here is the answer: " + json.dumps({"decision": "approved"}),
    ],
)
def test_malformed_json_yields_error_result(reconciler, raw):
    result = reconciler.parse(raw, [make_chunk("Exclusion 4.2", [1.0])])

    assert result.decision == "error"
    assert result.justification.startswith("Failed to parse AI response")
    assert result.clauses == []


def test_missing_field_yields_error_result(reconciler):
    raw = json.loads(answer())
    del raw["justification"]

    assert reconciler.parse(json.dumps(raw), []).decision == "error"


@pytest.mark.parametrize(
    "overrides",
    [
        {"amount": "25000"},
        {"decision": "maybe"},
        {"clauses": [{"section": 4.2, "text": "x", "relevanceScore": 0.1}]},
        {"clauses": [{"section": "4.2", "text": "x"}]},
        {"clauses": None},
        {"confidence": 0.8},
        {"clauses": [{"section": "4.2", "text": "x", "relevanceScore": 0.1, "documentId": 7}]},
    ],
)
def test_mismatched_fields_yield_error_result(reconciler, overrides):
    result = reconciler.parse(answer(**overrides), [])

    assert result.decision == "error"
    assert result.clauses == []


def test_non_string_response_yields_error_result(reconciler):
    assert reconciler.parse(None, []).decision == "error"


def test_decode_raises_parse_error(reconciler):
    with pytest.raises(ParseError):
        reconciler.decode("{oops")


def test_strip_code_fence_only_strips_whole_answer():
    assert strip_code_fence("```\n{}\n```") == "{}"
    assert strip_code_fence('{"a": "```"}') == '{"a": "```"}'


def test_result_serializes_with_camel_case_names(reconciler):
    chunk = make_chunk("Exclusion 4.2", [1.0], document_id=5, start_page=1, end_page=2)

    body = reconciler.parse(answer(), [chunk]).to_response()

    assert body["clauses"][0] == {
        "section": "Exclusion 4.2",
        "text": "Cosmetic surgery",
        "relevanceScore": 0.92,
        "documentId": 5,
        "pageRange": "1-2",
    }
