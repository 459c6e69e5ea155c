"""OpenAI-compatible LLM client wrapper with error handling.

Covers the two hosted collaborators the RAG pipeline depends on:
embeddings (single and batch) and chat completions (batch and streaming).
"""
import json
from typing import AsyncIterator, Dict, List, Optional

import httpx
import structlog

from healsage import config
from healsage.errors import ProviderError

logger = structlog.get_logger()

EMPTY_COMPLETION_FALLBACK = "I apologize, but I couldn't generate a response. Please try again."


class OpenAIClient:
    """Async client for an OpenAI-compatible embeddings/chat API."""

    def __init__(
        self,
        base_url: str = None,
        api_key: str = None,
        chat_model: str = None,
        embedding_model: str = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: API base URL (defaults to config.OPENAI_BASE_URL)
            api_key: Bearer token (defaults to config.OPENAI_API_KEY)
            chat_model: Completion model (defaults to config.CHAT_MODEL)
            embedding_model: Embedding model (defaults to config.EMBEDDING_MODEL)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = (base_url or config.OPENAI_BASE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else config.OPENAI_API_KEY
        self.chat_model = chat_model or config.CHAT_MODEL
        self.embedding_model = embedding_model or config.EMBEDDING_MODEL
        self.timeout = timeout or config.LLM_TIMEOUT
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            transport=self.transport,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )

    async def embed(self, text: str) -> List[float]:
        """Generate an embedding for a single text.

        Raises:
            ProviderError: On API errors or an empty embedding
        """
        embeddings = await self._embeddings(text)
        if not embeddings or not embeddings[0]:
            raise ProviderError("Failed to generate embedding: empty embedding returned")
        return embeddings[0]

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """Generate embeddings for multiple texts in one request.

        Returns:
            Embedding vectors in the same order as ``texts``

        Raises:
            ProviderError: On API errors, a count mismatch or an empty vector
        """
        if not texts:
            return []

        embeddings = await self._embeddings(texts)
        if len(embeddings) != len(texts):
            raise ProviderError(
                "Failed to generate embeddings: "
                f"expected {len(texts)} vectors, got {len(embeddings)}"
            )
        missing = [i for i, embedding in enumerate(embeddings) if not embedding]
        if missing:
            raise ProviderError(
                f"Failed to generate embeddings: empty embedding for inputs {missing}"
            )
        return embeddings

    async def _embeddings(self, payload_input) -> List[List[float]]:
        payload = {"model": self.embedding_model, "input": payload_input}
        count = len(payload_input) if isinstance(payload_input, list) else 1

        try:
            async with self._client() as client:
                logger.debug(
                    "embedding_request",
                    model=self.embedding_model,
                    input_count=count,
                )

                response = await client.post(f"{self.base_url}/embeddings", json=payload)
                response.raise_for_status()

                data = response.json().get("data", [])
                # The API may return items out of order; "index" is authoritative
                data = sorted(data, key=lambda item: item.get("index", 0))
                embeddings = [item.get("embedding", []) for item in data]

                logger.debug(
                    "embedding_response",
                    model=self.embedding_model,
                    count=len(embeddings),
                    dimension=len(embeddings[0]) if embeddings else 0,
                )

                return embeddings

        except httpx.HTTPError as e:
            logger.error("embedding_error", error=str(e), model=self.embedding_model)
            raise ProviderError(f"Failed to generate embedding: {e}") from e
        except (ValueError, KeyError, AttributeError) as e:
            logger.error("embedding_malformed_response", error=str(e), model=self.embedding_model)
            raise ProviderError(f"Failed to generate embedding: malformed response: {e}") from e

    def _chat_payload(self, messages: List[Dict[str, str]], stream: bool) -> Dict:
        return {
            "model": self.chat_model,
            "messages": messages,
            "max_completion_tokens": config.MAX_COMPLETION_TOKENS,
            "stream": stream,
        }

    async def chat(self, messages: List[Dict[str, str]]) -> str:
        """Send a chat completion request and return the assistant text.

        Args:
            messages: List of message dicts with 'role' and 'content'

        Returns:
            Completion text (a fixed apology if the provider returned nothing)

        Raises:
            ProviderError: On API errors
        """
        try:
            async with self._client() as client:
                logger.info(
                    "chat_completion_request",
                    model=self.chat_model,
                    message_count=len(messages),
                    stream=False,
                )

                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    json=self._chat_payload(messages, stream=False),
                )
                response.raise_for_status()

                choices = response.json().get("choices") or [{}]
                content = (choices[0].get("message") or {}).get("content") or ""

                logger.info(
                    "chat_completion_response",
                    model=self.chat_model,
                    response_length=len(content),
                )

                return content or EMPTY_COMPLETION_FALLBACK

        except httpx.HTTPError as e:
            logger.error(
                "chat_completion_error",
                error=str(e),
                status_code=getattr(getattr(e, "response", None), "status_code", None),
            )
            raise ProviderError(f"Failed to generate response: {e}") from e
        except (ValueError, KeyError, AttributeError) as e:
            logger.error("chat_completion_malformed_response", error=str(e))
            raise ProviderError(f"Failed to generate response: malformed response: {e}") from e

    async def chat_stream(self, messages: List[Dict[str, str]]) -> AsyncIterator[str]:
        """Stream a chat completion token by token.

        Yields:
            Non-empty content fragments in arrival order

        Raises:
            ProviderError: On API errors or malformed stream frames
        """
        token_count = 0
        try:
            async with self._client() as client:
                logger.info(
                    "chat_completion_request",
                    model=self.chat_model,
                    message_count=len(messages),
                    stream=True,
                )

                async with client.stream(
                    "POST",
                    f"{self.base_url}/chat/completions",
                    json=self._chat_payload(messages, stream=True),
                ) as response:
                    response.raise_for_status()

                    async for line in response.aiter_lines():
                        if not line.startswith("data:"):
                            continue

                        data = line[len("data:"):].strip()
                        if data == "[DONE]":
                            break

                        try:
                            frame = json.loads(data)
                        except json.JSONDecodeError as e:
                            raise ProviderError(f"Malformed stream frame: {data[:100]}") from e

                        choices = frame.get("choices") or [{}]
                        content = (choices[0].get("delta") or {}).get("content")
                        if content:
                            token_count += 1
                            yield content

            logger.info(
                "chat_completion_stream_finished",
                model=self.chat_model,
                token_count=token_count,
            )

        except httpx.HTTPError as e:
            logger.error("chat_completion_stream_error", error=str(e), tokens_sent=token_count)
            raise ProviderError(f"Failed to generate response: {e}") from e

    async def list_models(self) -> List[str]:
        """List the model ids the provider exposes.

        Raises:
            ProviderError: On API errors
        """
        try:
            async with self._client() as client:
                response = await client.get(f"{self.base_url}/models")
                response.raise_for_status()
                data = response.json()
                return [m["id"] for m in data.get("data", [])]
        except httpx.HTTPError as e:
            logger.error("list_models_error", error=str(e))
            raise ProviderError(f"Failed to list models: {e}") from e
        except (ValueError, KeyError, AttributeError) as e:
            logger.error("list_models_malformed_response", error=str(e))
            raise ProviderError(f"Failed to list models: malformed response: {e}") from e
