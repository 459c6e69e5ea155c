"""Ingest pipeline for indexing drive documents.

Orchestrates:
- Metadata lookup and download from the document source
- Text extraction
- Text chunking
- Batch embedding generation
- Vector storage
"""
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List

import structlog

from healsage.drive_client import DriveClient
from healsage.errors import DocumentProcessingError, UnsupportedDocumentError
from healsage.llm_client import OpenAIClient
from healsage.rag.chunker import TextChunker
from healsage.rag.extractor import DocumentExtractor
from healsage.rag.store import Chunk, ChunkRepository

logger = structlog.get_logger()


@dataclass
class ProcessedDocument:
    """A downloaded document reduced to text and passages."""

    file_id: str
    file_name: str
    mime_type: str
    content: str
    chunks: List[str]


class IngestPipeline:
    """Pipeline for indexing drive documents into the vector store."""

    def __init__(
        self,
        drive_client: DriveClient,
        llm_client: OpenAIClient,
        vector_store: ChunkRepository,
        extractor: DocumentExtractor = None,
        chunker: TextChunker = None,
    ):
        self.drive_client = drive_client
        self.llm_client = llm_client
        self.vector_store = vector_store
        self.extractor = extractor or DocumentExtractor()
        self.chunker = chunker or TextChunker()

    async def process_document(self, file_id: str) -> ProcessedDocument:
        """Download a drive file and split its text into chunks.

        Args:
            file_id: Drive file id

        Returns:
            ProcessedDocument with extracted text and chunks

        Raises:
            UnsupportedDocumentError: If the file's mime type can't be extracted
            DocumentProcessingError: For any other failure
        """
        try:
            metadata = await self.drive_client.get_file_metadata(file_id)
            file_name = metadata.get("name") or "unknown"
            mime_type = metadata.get("mimeType") or "unknown"

            logger.info(
                "processing_document",
                file_id=file_id,
                file_name=file_name,
                mime_type=mime_type,
            )

            data = await self.drive_client.download_file(file_id)
            content = self.extractor.extract(data, mime_type)
            chunks = self.chunker.chunk_text(content)

        except UnsupportedDocumentError:
            raise
        except Exception as e:
            logger.error(
                "document_processing_failed",
                file_id=file_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise DocumentProcessingError(f"Failed to process document: {e}") from e

        logger.info(
            "document_processed",
            file_id=file_id,
            file_name=file_name,
            **self.chunker.get_chunk_stats(chunks),
        )

        return ProcessedDocument(
            file_id=file_id,
            file_name=file_name,
            mime_type=mime_type,
            content=content,
            chunks=chunks,
        )

    async def index_document(self, file_id: str) -> Dict[str, Any]:
        """Process, embed and store a drive file.

        Args:
            file_id: Drive file id

        Returns:
            Dict with documentId and chunksProcessed
        """
        logger.info("indexing_started", file_id=file_id)

        processed = await self.process_document(file_id)
        document_id = str(uuid.uuid4())

        embeddings = await self.llm_client.embed_batch(processed.chunks)
        processed_at = datetime.now(timezone.utc).isoformat()

        self.vector_store.insert_many(
            Chunk(
                document_id=document_id,
                content=content,
                embedding=embedding,
                chunk_index=index,
                metadata={
                    "file_name": processed.file_name,
                    "file_id": processed.file_id,
                    "total_chunks": len(processed.chunks),
                    "processed_at": processed_at,
                },
            )
            for index, (content, embedding) in enumerate(zip(processed.chunks, embeddings))
        )

        logger.info(
            "document_indexed",
            file_id=file_id,
            document_id=document_id,
            chunks_processed=len(processed.chunks),
        )

        return {
            "documentId": document_id,
            "chunksProcessed": len(processed.chunks),
        }

    def has_indexed_documents(self) -> bool:
        return len(self.vector_store.list_all()) > 0

    def get_index_stats(self) -> Dict[str, int]:
        """Report total chunks and distinct document count."""
        return self.vector_store.get_stats()
