"""SQLite persistence for documents and their chunks.

Stores:
- Uploaded documents and their processing status
- Text chunks with page range and packed embedding vector

Chunks are append-only; every call opens its own connection so concurrent
readers and the ingesting writer never share state in memory.
"""
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence

import structlog

from policyqa import config
from policyqa.models import Chunk, Document, DocumentStatus
from policyqa.rag.codec import EmbeddingCodec

logger = structlog.get_logger()


class ChunkStore:
    """Document and chunk tables in a single SQLite file."""

    def __init__(self, db_path: Path = None, codec: EmbeddingCodec = None):
        """Initialize the store.

        Args:
            db_path: SQLite file (default from config.DB_PATH)
            codec: Codec that packs vectors for new rows; pass the same codec
                the pipeline encodes with (default: config element width)
        """
        self.db_path = Path(db_path or config.DB_PATH)
        self.codec = codec or EmbeddingCodec()

    @property
    def element_width(self) -> int:
        return self.codec.element_width

    def get_connection(self) -> sqlite3.Connection:
        """Get a connection with row_factory set to sqlite3.Row."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def init_database(self) -> None:
        """Create tables if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    file_name TEXT NOT NULL,
                    file_type TEXT NOT NULL,
                    file_path TEXT NOT NULL,
                    uploaded_at TEXT NOT NULL,
                    status TEXT NOT NULL
                )
            """)

            # embedding_width is kept per row so older vectors written at a
            # different precision still decode correctly
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS chunks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    document_id INTEGER NOT NULL REFERENCES documents(id),
                    chunk_index INTEGER NOT NULL,
                    start_page INTEGER NOT NULL,
                    end_page INTEGER NOT NULL,
                    content TEXT NOT NULL,
                    embedding BLOB,
                    embedding_width INTEGER NOT NULL,
                    created_at TEXT NOT NULL,
                    UNIQUE(document_id, chunk_index)
                )
            """)

            conn.commit()
            logger.info("database_initialized", db_path=str(self.db_path))

        except Exception as e:
            conn.rollback()
            logger.error("database_init_failed", error=str(e))
            raise
        finally:
            conn.close()

    @staticmethod
    def _row_to_document(row: sqlite3.Row) -> Document:
        return Document(
            id=row["id"],
            file_name=row["file_name"],
            file_type=row["file_type"],
            file_path=row["file_path"],
            uploaded_at=datetime.fromisoformat(row["uploaded_at"]),
            status=DocumentStatus(row["status"]),
        )

    def insert_document(self, file_name: str, file_type: str, file_path: str) -> Document:
        """Register an uploaded document with status UPLOADED."""
        uploaded_at = datetime.now(timezone.utc)
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO documents (file_name, file_type, file_path, uploaded_at, status)
                VALUES (?, ?, ?, ?, ?)
            """, (
                file_name,
                file_type,
                file_path,
                uploaded_at.isoformat(),
                DocumentStatus.UPLOADED.value,
            ))

            conn.commit()
            document_id = cursor.lastrowid
            logger.info("document_inserted", id=document_id, file_name=file_name)

            return Document(
                id=document_id,
                file_name=file_name,
                file_type=file_type,
                file_path=file_path,
                uploaded_at=uploaded_at,
            )

        except Exception as e:
            conn.rollback()
            logger.error("document_insert_failed", error=str(e), file_name=file_name)
            raise
        finally:
            conn.close()

    def update_document_status(self, document_id: int, status: DocumentStatus) -> None:
        conn = self.get_connection()

        try:
            conn.execute(
                "UPDATE documents SET status = ? WHERE id = ?",
                (status.value, document_id),
            )
            conn.commit()
            logger.info("document_status_updated", id=document_id, status=status.value)

        except Exception as e:
            conn.rollback()
            logger.error("document_status_update_failed", error=str(e), id=document_id)
            raise
        finally:
            conn.close()

    def get_document(self, document_id: int) -> Optional[Document]:
        conn = self.get_connection()

        try:
            row = conn.execute(
                "SELECT * FROM documents WHERE id = ?", (document_id,)
            ).fetchone()
            return self._row_to_document(row) if row else None
        finally:
            conn.close()

    def list_documents(self) -> List[Document]:
        conn = self.get_connection()

        try:
            rows = conn.execute("SELECT * FROM documents ORDER BY id").fetchall()
            return [self._row_to_document(row) for row in rows]
        finally:
            conn.close()

    def _insert_chunk(self, cursor: sqlite3.Cursor, chunk: Chunk) -> Chunk:
        embedding = self.codec.serialize(chunk.vector) if chunk.vector is not None else None

        cursor.execute("""
            INSERT INTO chunks (
                document_id, chunk_index, start_page, end_page,
                content, embedding, embedding_width, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            chunk.document_id,
            chunk.chunk_index,
            chunk.start_page,
            chunk.end_page,
            chunk.text,
            embedding,
            self.element_width,
            datetime.now(timezone.utc).isoformat(),
        ))

        return Chunk(
            id=cursor.lastrowid,
            document_id=chunk.document_id,
            chunk_index=chunk.chunk_index,
            start_page=chunk.start_page,
            end_page=chunk.end_page,
            text=chunk.text,
            vector=chunk.vector,
            file_name=chunk.file_name,
        )

    def append(self, chunk: Chunk) -> Chunk:
        """Insert a chunk and its packed vector.

        Returns:
            The chunk with its database id set
        """
        return self.append_many([chunk])[0]

    def append_many(self, chunks: Sequence[Chunk]) -> List[Chunk]:
        """Insert chunks in a single transaction; either all are stored or none.

        Returns:
            The chunks with their database ids set
        """
        conn = self.get_connection()
        cursor = conn.cursor()
        chunk = None

        try:
            stored = []
            for chunk in chunks:
                stored.append(self._insert_chunk(cursor, chunk))

            conn.commit()
            return stored

        except Exception as e:
            conn.rollback()
            logger.error(
                "chunk_insert_failed",
                error=str(e),
                document_id=chunk.document_id if chunk else None,
                chunk_index=chunk.chunk_index if chunk else None,
                rolled_back=len(chunks),
            )
            raise
        finally:
            conn.close()

    def list_all(self) -> List[Chunk]:
        """Return every stored chunk in insertion order.

        Raises:
            CodecError: If a stored vector has a corrupt byte length
        """
        conn = self.get_connection()

        try:
            rows = conn.execute("""
                SELECT
                    c.id, c.document_id, c.chunk_index, c.start_page, c.end_page,
                    c.content, c.embedding, c.embedding_width, d.file_name
                FROM chunks c
                JOIN documents d ON d.id = c.document_id
                ORDER BY c.id
            """).fetchall()

            return [
                Chunk(
                    id=row["id"],
                    document_id=row["document_id"],
                    chunk_index=row["chunk_index"],
                    start_page=row["start_page"],
                    end_page=row["end_page"],
                    text=row["content"],
                    vector=(
                        self.codec.deserialize(row["embedding"], row["embedding_width"])
                        if row["embedding"] is not None
                        else None
                    ),
                    file_name=row["file_name"],
                )
                for row in rows
            ]

        except Exception as e:
            logger.error("chunks_retrieval_failed", error=str(e))
            raise
        finally:
            conn.close()

    def count_chunks(self) -> int:
        conn = self.get_connection()

        try:
            return conn.execute("SELECT COUNT(*) FROM chunks").fetchone()[0]
        finally:
            conn.close()
