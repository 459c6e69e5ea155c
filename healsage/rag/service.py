"""RAG orchestration: retrieve passages, prompt the completion model, cite sources.

Handles:
- Query embedding
- Top-k retrieval from the vector store
- Context and citation assembly
- Batch and streaming answers
"""
from dataclasses import asdict, dataclass
from typing import Any, AsyncIterator, Dict, List, Optional

import structlog

from healsage import config
from healsage.llm_client import OpenAIClient
from healsage.rag.store import ChunkRepository, SearchResult

logger = structlog.get_logger()

FALLBACK_MESSAGE = (
    "I don't have any medical documents indexed yet to answer your question. "
    "Please upload medical datasets to Google Drive and index them first, "
    "or I can provide general medical information based on my training."
)

CONTEXT_SEPARATOR = "\n\n---\n\n"

SYSTEM_PROMPT_TEMPLATE = """You are HealSage, a knowledgeable medical AI assistant. Your role is to provide accurate, evidence-based health information to users.

IMPORTANT GUIDELINES:
1. Base your responses on the provided medical context/sources
2. Be clear, professional, and compassionate
3. Always remind users that you provide information, not medical advice
4. Suggest consulting healthcare professionals for diagnosis and treatment
5. If unsure or if the context doesn't contain relevant information, be honest about limitations
6. Use simple, easy-to-understand language
7. Structure responses clearly with proper formatting

CONTEXT FROM MEDICAL SOURCES:
{context}

Provide a helpful, accurate response based on this context."""

CITATIONS_EVENT = "citations"
TOKEN_EVENT = "token"


@dataclass
class Citation:
    """Reference from an answer back to a retrieved chunk."""

    source: str
    excerpt: str
    confidence: float
    page: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RAGResponse:
    answer: str
    citations: List[Citation]


@dataclass
class StreamEvent:
    """One item of a streamed answer: a citations list or a text fragment."""

    type: str
    data: Any


def build_excerpt(content: str, length: int = None) -> str:
    length = length if length is not None else config.CITATION_EXCERPT_LENGTH
    if len(content) > length:
        return content[:length] + "..."
    return content


def build_citations(results: List[SearchResult]) -> List[Citation]:
    """Build citations from search results.

    Confidence is the configured constant unless
    CITATION_CONFIDENCE_FROM_SCORE is set, in which case the retrieval
    similarity is reported.
    """
    citations = []
    for result in results:
        chunk = result.chunk
        if config.CITATION_CONFIDENCE_FROM_SCORE:
            confidence = round(result.score, 3)
        else:
            confidence = config.CITATION_CONFIDENCE

        citations.append(
            Citation(
                source=chunk.file_name or "Unknown Source",
                excerpt=build_excerpt(chunk.content),
                confidence=confidence,
                page=chunk.chunk_index + 1,
            )
        )
    return citations


def build_context(results: List[SearchResult]) -> str:
    """Label each retrieved chunk with its source and join them."""
    return CONTEXT_SEPARATOR.join(
        f"[Source {i}: {r.chunk.file_name or 'Unknown'}]\n{r.chunk.content}"
        for i, r in enumerate(results, 1)
    )


def build_messages(question: str, context: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT_TEMPLATE.format(context=context)},
        {"role": "user", "content": question},
    ]


class RAGService:
    """Answers questions from indexed documents."""

    def __init__(
        self,
        llm_client: OpenAIClient,
        vector_store: ChunkRepository,
        top_k: Optional[int] = None,
    ):
        """Initialize the RAG service.

        Args:
            llm_client: Embedding and completion provider
            vector_store: Store to retrieve chunks from
            top_k: Number of chunks to retrieve (default from config)
        """
        self.llm_client = llm_client
        self.vector_store = vector_store
        self.top_k = top_k if top_k is not None else config.RETRIEVAL_TOP_K

    async def retrieve(self, question: str) -> List[SearchResult]:
        """Embed the question and fetch the closest chunks."""
        query_embedding = await self.llm_client.embed(question)
        results = self.vector_store.search(query_embedding, k=self.top_k)

        logger.info(
            "rag_retrieval_completed",
            question_length=len(question),
            results_returned=len(results),
            top_score=round(results[0].score, 4) if results else None,
        )

        return results

    async def answer(self, question: str) -> RAGResponse:
        """Answer a question in one completion call.

        Returns:
            RAGResponse with the answer text and citations (empty on fallback)

        Raises:
            ProviderError: If embedding or completion fails
        """
        logger.info("rag_query", question_preview=question[:100])

        results = await self.retrieve(question)

        if not results:
            logger.info("no_relevant_context_found")
            return RAGResponse(answer=FALLBACK_MESSAGE, citations=[])

        context = build_context(results)
        answer = await self.llm_client.chat(build_messages(question, context))

        return RAGResponse(answer=answer, citations=build_citations(results))

    async def answer_stream(self, question: str) -> AsyncIterator[StreamEvent]:
        """Answer a question as a stream of events.

        Yields one ``citations`` event first, then ``token`` events. The
        fallback message is streamed one character per token event.

        Raises:
            ProviderError: If embedding or completion fails
        """
        logger.info("rag_streaming_query", question_preview=question[:100])

        results = await self.retrieve(question)
        citations = build_citations(results)

        yield StreamEvent(type=CITATIONS_EVENT, data=citations)

        if not results:
            logger.info("no_relevant_context_found")
            for char in FALLBACK_MESSAGE:
                yield StreamEvent(type=TOKEN_EVENT, data=char)
            return

        context = build_context(results)
        async for token in self.llm_client.chat_stream(build_messages(question, context)):
            yield StreamEvent(type=TOKEN_EVENT, data=token)
