"""Parse model answers and attach source provenance to cited clauses."""
import re
from typing import List, Sequence

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from policyqa.errors import ParseError
from policyqa.models import Chunk, ClauseReference, Decision, QueryResult

logger = structlog.get_logger()

_CODE_FENCE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL)


class ClausePayload(BaseModel):
    """A clause exactly as the model must emit it."""

    model_config = ConfigDict(extra="forbid", strict=True)

    section: str
    text: str
    relevance_score: float = Field(alias="relevanceScore")


class AnswerPayload(BaseModel):
    """The JSON answer shape demanded by the prompt templates."""

    model_config = ConfigDict(extra="forbid", strict=True)

    decision: Decision
    amount: float
    justification: str
    clauses: List[ClausePayload]


def strip_code_fence(text: str) -> str:
    """Remove one Markdown code fence wrapped around the whole answer."""
    match = _CODE_FENCE.match(text)
    return match.group(1) if match else text


class ResponseReconciler:
    """Turns raw model text into a QueryResult bound to retrieved chunks."""

    def decode(self, raw_text: str) -> AnswerPayload:
        """Validate raw model output against the answer schema.

        Raises:
            ParseError: On malformed JSON or missing/mismatched/unknown fields
        """
        if not isinstance(raw_text, str):
            raise ParseError("Model returned no text")

        try:
            return AnswerPayload.model_validate_json(strip_code_fence(raw_text))
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"]) or "<root>"
            raise ParseError(
                f"{e.error_count()} validation error(s); {location}: {first['msg']}"
            ) from e

    def enrich(self, clauses: Sequence[ClauseReference], ranked_chunks: Sequence[Chunk]) -> None:
        """Bind each clause to the first ranked chunk containing its section.

        Matching is a case-sensitive substring test in retrieval order, first
        match wins. Unmatched clauses keep document_id and page_range unset.
        """
        for clause in clauses:
            for chunk in ranked_chunks:
                if clause.section in chunk.text:
                    clause.document_id = chunk.document_id
                    clause.page_range = chunk.page_range
                    break

    def parse(self, raw_text: str, ranked_chunks: Sequence[Chunk] = ()) -> QueryResult:
        """Build the final result, or the error fallback if parsing fails.

        Args:
            raw_text: Text returned by the generative model
            ranked_chunks: Chunks used as context, in retrieval order

        Returns:
            Enriched QueryResult, or an error result with no clauses
        """
        try:
            payload = self.decode(raw_text)
        except ParseError as e:
            logger.error(
                "model_response_parse_failed",
                error=str(e),
                response_preview=raw_text[:200] if isinstance(raw_text, str) else None,
            )
            return QueryResult.error(f"Failed to parse AI response: {e}")

        result = QueryResult(
            decision=payload.decision,
            amount=payload.amount,
            justification=payload.justification,
            clauses=[
                ClauseReference(
                    section=clause.section,
                    text=clause.text,
                    relevance_score=clause.relevance_score,
                )
                for clause in payload.clauses
            ],
        )
        self.enrich(result.clauses, ranked_chunks)

        logger.info(
            "model_response_reconciled",
            decision=result.decision,
            clause_count=len(result.clauses),
            bound_clauses=sum(1 for c in result.clauses if c.document_id is not None),
        )

        return result
