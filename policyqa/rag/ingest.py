"""Ingest pipeline for indexing uploaded documents.

Orchestrates:
- Text extraction (page by page)
- Fixed-size chunking
- Embedding generation
- Chunk storage and document status tracking
"""
from pathlib import Path
from typing import Any, Dict, List

import structlog

from policyqa.models import Chunk, Document, DocumentStatus
from policyqa.rag.chunker import TextChunker
from policyqa.rag.codec import EmbeddingCodec, check_store_width
from policyqa.storage import guess_media_type

logger = structlog.get_logger()


class IngestPipeline:
    """Pipeline for turning a stored document into embedded chunks."""

    def __init__(self, store, codec: EmbeddingCodec, extractor, chunker: TextChunker = None):
        """Initialize the ingest pipeline.

        Args:
            store: Chunk store with append_many() and update_document_status()
            codec: Embedding codec used to vectorize chunks
            extractor: Text extractor with extract_pages()
            chunker: Text chunker (default: TextChunker with config chunk size)

        Raises:
            CodecError: If the store packs vectors at another element width
        """
        check_store_width(store, codec)
        self.store = store
        self.codec = codec
        self.extractor = extractor
        self.chunker = chunker or TextChunker()

    def build_chunks(self, document: Document) -> List[Chunk]:
        """Extract, split and embed a document without storing anything."""
        extracted = self.extractor.extract_pages(document.file_path, document.file_type)
        text_chunks = self.chunker.chunk_text(extracted.text)

        logger.info(
            "document_chunked",
            document_id=document.id,
            **self.chunker.get_chunk_stats(text_chunks),
        )

        chunks = []
        for text_chunk in text_chunks:
            chunks.append(
                Chunk(
                    document_id=document.id,
                    chunk_index=text_chunk.chunk_index,
                    start_page=extracted.page_at(text_chunk.char_start),
                    end_page=extracted.page_at(text_chunk.char_end - 1),
                    text=text_chunk.content,
                    vector=self.codec.encode(text_chunk.content),
                    file_name=document.file_name,
                )
            )
        return chunks

    def ingest_document(self, document: Document) -> Dict[str, Any]:
        """Ingest a single document.

        All chunks are embedded before any is stored, and they are stored in
        one transaction, so a failure leaves no partial chunk set behind.

        Args:
            document: Registered document to process

        Returns:
            Dictionary with ingestion results

        Raises:
            Exception: Whatever extraction, embedding or storage raised; the
                document is marked FAILED first
        """
        logger.info("ingesting_document", document_id=document.id, file_name=document.file_name)

        try:
            chunks = self.build_chunks(document)

            if not chunks:
                logger.warning("no_chunks_created", document_id=document.id)

            self.store.append_many(chunks)

        except Exception as e:
            logger.error(
                "document_ingestion_failed",
                document_id=document.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            self.store.update_document_status(document.id, DocumentStatus.FAILED)
            document.status = DocumentStatus.FAILED
            raise

        self.store.update_document_status(document.id, DocumentStatus.PROCESSED)
        document.status = DocumentStatus.PROCESSED

        logger.info(
            "document_ingested",
            document_id=document.id,
            chunks_created=len(chunks),
        )

        return {
            "document_id": document.id,
            "file_name": document.file_name,
            "chunks_created": len(chunks),
            "embeddings_generated": len(chunks),
        }

    def ingest_file(self, file_path: Path) -> Dict[str, Any]:
        """Register a file already on disk, without copying it, and ingest it.

        The media type is guessed from the file extension.
        """
        path = Path(file_path).resolve()
        document = self.store.insert_document(
            file_name=path.name,
            file_type=guess_media_type(path.name),
            file_path=str(path),
        )
        return self.ingest_document(document)
