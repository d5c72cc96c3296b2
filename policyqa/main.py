"""Quart HTTP surface for policyqa.

The query pipeline is synchronous; handlers run it in a worker thread.
"""
import asyncio
from dataclasses import dataclass

import structlog
from hypercorn.asyncio import serve
from hypercorn.config import Config as HypercornConfig
from quart import Quart, jsonify, request
from quart.utils import run_sync

from policyqa import config
from policyqa.db import ChunkStore
from policyqa.errors import PolicyQAError, UnsupportedFormat
from policyqa.extractor import TextExtractor
from policyqa.llm_client import OllamaClient
from policyqa.log_setup import configure_logging
from policyqa.rag.codec import EmbeddingCodec
from policyqa.rag.ingest import IngestPipeline
from policyqa.rag.query import QueryService
from policyqa.storage import DocumentStorage

logger = structlog.get_logger()


@dataclass
class Services:
    """Everything the request handlers need, built once per app."""

    store: ChunkStore
    storage: DocumentStorage
    ollama: OllamaClient
    query_service: QueryService
    ingest_pipeline: IngestPipeline


def build_services() -> Services:
    """Wire the default collaborators from config."""
    ollama = OllamaClient()
    codec = EmbeddingCodec(ollama)
    store = ChunkStore(codec=codec)
    return Services(
        store=store,
        storage=DocumentStorage(store),
        ollama=ollama,
        query_service=QueryService(store=store, codec=codec, generator=ollama),
        ingest_pipeline=IngestPipeline(store=store, codec=codec, extractor=TextExtractor()),
    )


def create_app(services: Services = None) -> Quart:
    """Create the Quart application.

    Args:
        services: Pre-built services (tests inject fakes); built from config
            when omitted
    """
    app = Quart(__name__)
    services = services or build_services()

    @app.before_serving
    async def startup():
        services.store.init_database()

    @app.route("/api/v1/query", methods=["POST"])
    async def process_query():
        """Answer a question against the ingested documents.

        Expects JSON body:
        {
            "query": "question text",
            "language": "en"  // optional
        }

        Returns the QueryResult as JSON. Pipeline failures come back as a
        result with decision "error", not as an HTTP error.
        """
        data = await request.get_json(silent=True)

        if not isinstance(data, dict) or not isinstance(data.get("query"), str):
            logger.error("missing_query_field", data=data)
            return jsonify({"error": "Missing 'query' in request body"}), 400

        query = data["query"].strip()
        language = data.get("language") or config.DEFAULT_LANGUAGE

        if not query:
            return jsonify({"error": "Query cannot be empty"}), 400

        if len(query) > config.MAX_QUERY_LENGTH:
            return jsonify(
                {"error": f"Query too long (max {config.MAX_QUERY_LENGTH} characters)"}
            ), 400

        logger.info("query_request_received", query_length=len(query), language=language)

        result = await run_sync(services.query_service.process_query)(query, language)
        return jsonify(result.to_response())

    @app.route("/api/documents/upload", methods=["POST"])
    async def upload_document():
        """Store an uploaded file and ingest it.

        Expects multipart form data with a 'file' field.
        """
        files = await request.files
        upload = files.get("file")

        if upload is None or not upload.filename:
            return jsonify({"error": "Missing 'file' in form data"}), 400

        data = upload.read()
        document = await run_sync(services.storage.store_file)(upload.filename, data)

        try:
            stats = await run_sync(services.ingest_pipeline.ingest_document)(document)
        except UnsupportedFormat as e:
            return jsonify({"error": str(e), "document": document.to_dict()}), 415
        except PolicyQAError as e:
            return jsonify({"error": str(e), "document": document.to_dict()}), 422

        return jsonify({"document": document.to_dict(), "chunks_created": stats["chunks_created"]})

    @app.route("/api/documents", methods=["GET"])
    async def list_documents():
        documents = await run_sync(services.store.list_documents)()
        return jsonify([document.to_dict() for document in documents])

    @app.route("/health/ready")
    async def health_ready():
        """Readiness probe - check Ollama is reachable and models are pulled."""
        checks = {
            "status": "healthy",
            "ollama": False,
            "models": False,
        }

        try:
            models = await run_sync(services.ollama.list_models)()
            checks["ollama"] = True

            missing = [
                model
                for model in (services.ollama.chat_model, services.ollama.embedding_model)
                if model not in models
            ]
            if missing:
                checks["status"] = "unhealthy"
                checks["error"] = f"Missing models: {', '.join(missing)}"
            else:
                checks["models"] = True

            status_code = 200 if checks["status"] == "healthy" else 503
            return jsonify(checks), status_code

        except PolicyQAError as e:
            logger.error("health_check_failed", error=str(e))
            checks["status"] = "unhealthy"
            checks["error"] = str(e)
            return jsonify(checks), 503

    @app.route("/health/live")
    async def health_live():
        """Liveness probe - check if app is running."""
        return jsonify({"status": "alive"}), 200

    @app.errorhandler(404)
    async def not_found(error):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(500)
    async def internal_error(error):
        logger.error("internal_server_error", error=str(error))
        return jsonify({"error": "Internal server error"}), 500

    return app


def run() -> None:
    """Serve the app with hypercorn."""
    configure_logging()

    hypercorn_config = HypercornConfig()
    hypercorn_config.bind = [f"{config.HOST}:{config.PORT}"]
    asyncio.run(serve(create_app(), hypercorn_config))


if __name__ == "__main__":
    run()
