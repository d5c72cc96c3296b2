"""Query pipeline: embed, retrieve, prompt, generate, reconcile.

``QueryService.process_query`` never raises. Every failure along the way is
logged and turned into an error-shaped QueryResult.
"""
import structlog

from policyqa import config
from policyqa.errors import CodecError, EmbeddingError, ProviderError
from policyqa.models import QueryResult
from policyqa.rag.codec import EmbeddingCodec, check_store_width
from policyqa.rag.prompt import PromptBuilder
from policyqa.rag.providers import ChunkStore, GenerativeModel
from policyqa.rag.reconciler import ResponseReconciler
from policyqa.rag.similarity import BruteForceIndex, SimilarityIndex

logger = structlog.get_logger()

NO_DOCUMENTS_MESSAGE = "No documents have been ingested"


class QueryService:
    """Answers one question at a time against the stored chunks."""

    def __init__(
        self,
        store: ChunkStore,
        codec: EmbeddingCodec,
        generator: GenerativeModel,
        index: SimilarityIndex = None,
        prompt_builder: PromptBuilder = None,
        reconciler: ResponseReconciler = None,
        top_k: int = None,
    ):
        """Initialize the query service.

        Args:
            store: Source of candidate chunks
            codec: Embedding codec for the question
            generator: Generative model producing the JSON answer
            index: Similarity index (default: BruteForceIndex)
            prompt_builder: Prompt builder (default: PromptBuilder())
            reconciler: Response reconciler (default: ResponseReconciler())
            top_k: Chunks passed to the model (default from config)

        Raises:
            CodecError: If the store packs vectors at another element width
        """
        check_store_width(store, codec)
        self.store = store
        self.codec = codec
        self.generator = generator
        self.index = index or BruteForceIndex()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.reconciler = reconciler or ResponseReconciler()
        self.top_k = top_k or config.RETRIEVAL_TOP_K

    def process_query(self, query: str, language: str = None) -> QueryResult:
        """Answer a question with a structured decision.

        Args:
            query: Natural-language question
            language: Template language code, default template if unknown

        Returns:
            Enriched QueryResult, or an error result describing the failure
        """
        if not query or not query.strip():
            return QueryResult.error("Query cannot be empty")

        logger.info("query_received", query_length=len(query), language=language)

        try:
            query_vector = self.codec.encode(query)

            candidates = self.store.list_all()
            if not candidates:
                logger.warning("empty_corpus_query")
                return QueryResult.error(NO_DOCUMENTS_MESSAGE)

            ranked = self.index.top_k(query_vector, candidates, self.top_k)
            ranked_chunks = [chunk for chunk, _ in ranked]

            prompt = self.prompt_builder.build(query, ranked_chunks, language)
            raw_answer = self.generator.generate(prompt)

            result = self.reconciler.parse(raw_answer, ranked_chunks)

        except EmbeddingError as e:
            logger.error("query_embedding_failed", error=str(e))
            return QueryResult.error(f"Embedding generation failed: {e}")
        except ProviderError as e:
            logger.error("query_generation_failed", error=str(e))
            return QueryResult.error(f"Failed to get response from the language model: {e}")
        except CodecError as e:
            logger.error("stored_vector_decode_failed", error=str(e))
            return QueryResult.error(f"Stored embeddings could not be decoded: {e}")
        except Exception as e:
            logger.exception("query_processing_failed", error=str(e), error_type=type(e).__name__)
            return QueryResult.error("Processing failed due to an internal error")

        logger.info(
            "query_completed",
            decision=result.decision,
            context_chunks=len(ranked_chunks),
        )

        return result
