"""Tests for the RAG orchestrator."""
import pytest

from healsage import config
from healsage.errors import ProviderError
from healsage.rag.service import (
    CITATIONS_EVENT,
    FALLBACK_MESSAGE,
    TOKEN_EVENT,
    RAGService,
    build_context,
    build_excerpt,
)
from healsage.rag.store import SearchResult
from tests.conftest import make_chunk


async def collect(stream):
    return [event async for event in stream]


async def test_answer_falls_back_when_nothing_indexed(rag_service, llm_client):
    response = await rag_service.answer("What is insulin?")

    assert response.answer == FALLBACK_MESSAGE
    assert response.citations == []
    assert llm_client.chat_calls == []


async def test_stream_falls_back_character_by_character(rag_service, llm_client):
    events = await collect(rag_service.answer_stream("What is insulin?"))

    assert events[0].type == CITATIONS_EVENT
    assert events[0].data == []
    tokens = events[1:]
    assert all(e.type == TOKEN_EVENT and len(e.data) == 1 for e in tokens)
    assert "".join(e.data for e in tokens) == FALLBACK_MESSAGE
    assert llm_client.chat_calls == []


async def test_answer_with_context_and_citations(rag_service, vector_store, llm_client):
    long_content = "Insulin " + "helps diabetes patients control blood sugar. " * 10
    vector_store.insert(make_chunk(long_content, chunk_index=2, file_name="insulin.pdf"))
    vector_store.insert(make_chunk("Sleep well to recover.", document_id="doc-2", file_name="sleep.txt"))

    response = await rag_service.answer("How does insulin treat diabetes?")

    assert response.answer == llm_client.answer
    assert len(response.citations) == 2
    top = response.citations[0]
    assert top.source == "insulin.pdf"
    assert top.page == 3
    assert top.confidence == config.CITATION_CONFIDENCE
    assert top.excerpt == long_content[:200] + "..."

    system_prompt = llm_client.chat_calls[0][0]["content"]
    assert "HealSage" in system_prompt
    assert "not medical advice" in system_prompt
    assert "[Source 1: insulin.pdf]" in system_prompt
    assert "[Source 2: sleep.txt]" in system_prompt
    assert llm_client.chat_calls[0][1] == {
        "role": "user",
        "content": "How does insulin treat diabetes?",
    }


async def test_retrieval_is_capped_at_top_k(llm_client, vector_store):
    for i in range(8):
        vector_store.insert(make_chunk(f"Blood panel result {i}", chunk_index=i))

    response = await RAGService(llm_client, vector_store).answer("blood results")

    assert len(response.citations) == 5


async def test_stream_emits_citations_then_tokens(rag_service, vector_store, llm_client):
    vector_store.insert(make_chunk("Insulin is a hormone made by the pancreas.", file_name="hormones.pdf"))

    events = await collect(rag_service.answer_stream("insulin"))

    assert events[0].type == CITATIONS_EVENT
    assert [c.source for c in events[0].data] == ["hormones.pdf"]
    assert [e.data for e in events[1:]] == llm_client.tokens
    assert all(e.type == TOKEN_EVENT for e in events[1:])


async def test_embedding_failure_propagates(rag_service, llm_client):
    llm_client.fail_embeddings = True

    with pytest.raises(ProviderError):
        await rag_service.answer("insulin")

    with pytest.raises(ProviderError):
        await collect(rag_service.answer_stream("insulin"))


async def test_completion_failure_propagates(rag_service, vector_store, llm_client):
    vector_store.insert(make_chunk("Insulin facts."))
    llm_client.fail_completion = True

    with pytest.raises(ProviderError):
        await rag_service.answer("insulin")


async def test_confidence_from_score(monkeypatch, rag_service, vector_store):
    monkeypatch.setattr(config, "CITATION_CONFIDENCE_FROM_SCORE", True)
    vector_store.insert(make_chunk("Fever guide for fever."))

    response = await rag_service.answer("fever")

    assert response.citations[0].confidence == pytest.approx(1.0)


def test_build_excerpt():
    assert build_excerpt("short") == "short"
    assert build_excerpt("x" * 200) == "x" * 200
    assert build_excerpt("x" * 201) == "x" * 200 + "..."


def test_build_context_labels_sources():
    results = [
        SearchResult(chunk=make_chunk("Alpha text.", file_name="a.pdf"), score=0.9),
        SearchResult(chunk=make_chunk("Beta text.", file_name=None), score=0.5),
    ]

    assert build_context(results) == (
        "[Source 1: a.pdf]\nAlpha text.\n\n---\n\n[Source 2: Unknown]\nBeta text."
    )


async def test_explicit_zero_top_k_retrieves_nothing(llm_client, vector_store):
    vector_store.insert(make_chunk("Insulin facts for diabetes care."))

    response = await RAGService(llm_client, vector_store, top_k=0).answer("insulin")

    assert response.answer == FALLBACK_MESSAGE
    assert response.citations == []


def test_build_excerpt_explicit_length():
    assert build_excerpt("x" * 20, length=10) == "x" * 10 + "..."
    assert build_excerpt("abc", length=0) == "..."
