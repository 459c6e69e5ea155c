"""Pytest configuration and fixtures."""
from typing import Dict, List

import pytest

from healsage.errors import ProviderError
from healsage.memory import InMemoryConversationStore
from healsage.rag.ingest import IngestPipeline
from healsage.rag.service import RAGService
from healsage.rag.store import Chunk, InMemoryVectorStore

KEYWORDS = ["diabetes", "insulin", "heart", "blood", "sleep", "fever"]


def keyword_embedding(text: str) -> List[float]:
    """Bag-of-keywords vector; close enough to real embeddings for ranking tests."""
    lowered = text.lower()
    return [float(lowered.count(word)) for word in KEYWORDS]


class FakeLLMClient:
    """In-process stand-in for the embedding/completion provider."""

    def __init__(self, answer: str = "Insulin regulates blood sugar.", tokens=None):
        self.answer = answer
        self.tokens = tokens if tokens is not None else ["Insulin ", "regulates ", "blood sugar."]
        self.fail_embeddings = False
        self.fail_completion = False
        self.fail_stream_after = None
        self.chat_calls: List[List[Dict[str, str]]] = []
        self.embed_calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        if self.fail_embeddings:
            raise ProviderError("Failed to generate embedding: provider down")
        self.embed_calls.append(text)
        return keyword_embedding(text)

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        if self.fail_embeddings:
            raise ProviderError("Failed to generate embeddings: provider down")
        return [keyword_embedding(t) for t in texts]

    async def chat(self, messages):
        if self.fail_completion:
            raise ProviderError("Failed to generate response: provider down")
        self.chat_calls.append(messages)
        return self.answer

    async def chat_stream(self, messages):
        self.chat_calls.append(messages)
        for i, token in enumerate(self.tokens):
            if self.fail_stream_after is not None and i >= self.fail_stream_after:
                raise ProviderError("Failed to generate response: stream interrupted")
            yield token

    async def list_models(self):
        if self.fail_completion:
            raise ProviderError("Failed to list models: provider down")
        return ["gpt-5", "text-embedding-3-small"]


SENTENCES = [
    "Diabetes is a chronic condition in which the body cannot regulate blood sugar properly.",
    "Insulin therapy is the standard treatment for type one diabetes in most patients.",
    "Regular exercise and a balanced diet help patients keep their blood sugar stable.",
]


class FakeDriveClient:
    """In-process stand-in for the Google Drive client."""

    def __init__(self):
        self.files = {
            "file-1": {
                "id": "file-1",
                "name": "diabetes-guide.txt",
                "mimeType": "text/plain",
                "size": "1024",
                "modifiedTime": "2025-01-01T00:00:00.000Z",
            },
            "file-2": {
                "id": "file-2",
                "name": "scan.png",
                "mimeType": "image/png",
                "size": "2048",
                "modifiedTime": "2025-01-02T00:00:00.000Z",
            },
        }
        self.contents = {
            "file-1": " ".join(SENTENCES).encode("utf-8"),
            "file-2": b"\x89PNG",
        }

    async def list_files(self, query=None):
        return list(self.files.values())

    async def get_file_metadata(self, file_id):
        if file_id not in self.files:
            raise ProviderError(f"Failed to fetch file metadata: {file_id} not found")
        return self.files[file_id]

    async def download_file(self, file_id):
        return self.contents[file_id]


def make_chunk(content: str, document_id: str = "doc-1", chunk_index: int = 0, **metadata) -> Chunk:
    metadata.setdefault("file_name", "guide.pdf")
    return Chunk(
        document_id=document_id,
        content=content,
        embedding=keyword_embedding(content),
        chunk_index=chunk_index,
        metadata=metadata,
    )


@pytest.fixture
def llm_client():
    return FakeLLMClient()


@pytest.fixture
def drive_client():
    return FakeDriveClient()


@pytest.fixture
def vector_store():
    return InMemoryVectorStore()


@pytest.fixture
def conversation_store():
    return InMemoryConversationStore()


@pytest.fixture
def rag_service(llm_client, vector_store):
    return RAGService(llm_client, vector_store)


@pytest.fixture
def ingest_pipeline(drive_client, llm_client, vector_store):
    return IngestPipeline(drive_client, llm_client, vector_store)
