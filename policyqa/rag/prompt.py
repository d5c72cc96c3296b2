"""Prompt construction for policy decisions.

Templates are looked up by language code; unknown codes use the default.
Each template has ``{context}``, ``{question}`` and ``{json_format}`` slots.
"""
from typing import Mapping, Sequence

from policyqa import config
from policyqa.models import Chunk

ANSWER_JSON_FORMAT = """{
    "decision": "approved|rejected|needs_review",
    "amount": 0.0,
    "justification": "string",
    "clauses": [
        {
            "section": "string",
            "text": "string",
            "relevanceScore": 0.0
        }
    ]
}"""

ENGLISH_TEMPLATE = """Analyze the following insurance policy context and answer the question.
Context: {context}
Question: {question}

Respond in exactly this JSON format:
{json_format}
"""

HINDI_TEMPLATE = """निम्नलिखित बीमा पॉलिसी संदर्भ का विश्लेषण करें और प्रश्न का उत्तर दें।
संदर्भ: {context}
प्रश्न: {question}

निम्नलिखित JSON प्रारूप में उत्तर दें:
{json_format}
"""

TEMPLATES = {
    "en": ENGLISH_TEMPLATE,
    "hi": HINDI_TEMPLATE,
}


def format_context(chunks: Sequence[Chunk]) -> str:
    """Render ranked chunks as labelled context blocks, best first."""
    return "\n\n".join(
        f"[Document: {chunk.file_name}, Section: {chunk.chunk_index}]\n{chunk.text}"
        for chunk in chunks
    )


class PromptBuilder:
    """Builds the generative prompt from a question and ranked chunks."""

    def __init__(self, templates: Mapping[str, str] = None, default_language: str = None):
        """Initialize the builder.

        Args:
            templates: Language code -> template (default: TEMPLATES)
            default_language: Code used for unknown languages (default from config)
        """
        self.templates = dict(TEMPLATES if templates is None else templates)
        self.default_language = default_language or config.DEFAULT_LANGUAGE

        if self.default_language not in self.templates:
            raise ValueError(
                f"No template for default language '{self.default_language}'"
            )

    def template_for(self, language: str = None) -> str:
        return self.templates.get(language, self.templates[self.default_language])

    def build(self, query: str, ranked_chunks: Sequence[Chunk], language: str = None) -> str:
        """Compose the prompt.

        Args:
            query: User question
            ranked_chunks: Retrieved chunks in relevance-descending order
            language: Language code selecting the template

        Returns:
            Prompt string
        """
        return self.template_for(language).format(
            context=format_context(ranked_chunks),
            question=query,
            json_format=ANSWER_JSON_FORMAT,
        )
