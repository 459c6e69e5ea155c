"""Main Quart application for the HealSage RAG chat service."""
import json
import logging
from typing import Any, Dict, Optional

import structlog
from pydantic import ValidationError
from quart import Quart, jsonify, make_response, request

from healsage import config
from healsage.drive_client import DriveClient
from healsage.errors import NotFoundError
from healsage.llm_client import OpenAIClient
from healsage.memory import ConversationRepository, InMemoryConversationStore
from healsage.rag.ingest import IngestPipeline
from healsage.rag.service import CITATIONS_EVENT, TOKEN_EVENT, RAGService
from healsage.rag.store import ChunkRepository, InMemoryVectorStore
from healsage.schemas import ChatRequest, ProcessDocumentRequest, validation_details

logging.basicConfig(format="%(message)s", level=config.LOG_LEVEL)

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = structlog.get_logger()


def _validation_error_response(error: ValidationError):
    return jsonify({"error": "Validation error", "details": validation_details(error)}), 400


def _server_error_response(error_message: str, error: Exception):
    return jsonify({"error": error_message, "message": str(error)}), 500


def _sse_frame(payload: Dict[str, Any]) -> bytes:
    return f"data: {json.dumps(payload)}\n\n".encode("utf-8")


def create_app(
    llm_client: Optional[OpenAIClient] = None,
    drive_client: Optional[DriveClient] = None,
    vector_store: Optional[ChunkRepository] = None,
    conversation_store: Optional[ConversationRepository] = None,
    rag_service: Optional[RAGService] = None,
    ingest_pipeline: Optional[IngestPipeline] = None,
) -> Quart:
    """Build the Quart app with explicitly wired collaborators.

    Anything not supplied is constructed from configuration.
    """
    llm_client = llm_client or OpenAIClient()
    drive_client = drive_client or DriveClient()
    vector_store = vector_store if vector_store is not None else InMemoryVectorStore()
    conversations = (
        conversation_store if conversation_store is not None else InMemoryConversationStore()
    )
    rag_service = rag_service or RAGService(llm_client, vector_store)
    ingest_pipeline = ingest_pipeline or IngestPipeline(drive_client, llm_client, vector_store)

    app = Quart(__name__)

    async def _parse_chat_request() -> ChatRequest:
        data = await request.get_json(silent=True)
        return ChatRequest.model_validate(data if data is not None else {})

    def _resolve_conversation(chat_request: ChatRequest) -> str:
        """Return the conversation id to use, creating one if none was supplied.

        Raises:
            NotFoundError: If a supplied conversation id doesn't exist
        """
        if chat_request.conversation_id:
            if conversations.get_conversation(chat_request.conversation_id) is None:
                raise NotFoundError(f"Conversation {chat_request.conversation_id} not found")
            return chat_request.conversation_id

        conversation = conversations.create_conversation(
            title=chat_request.message[: config.CONVERSATION_TITLE_LENGTH]
        )
        logger.info("new_conversation_created", conversation_id=conversation.id)
        return conversation.id

    @app.route("/api/chat", methods=["POST"])
    async def chat():
        """Answer a message with RAG in a single response.

        Expects JSON body:
        {
            "message": "user message text",
            "conversationId": "optional-id"  // creates new if not provided
        }

        Returns JSON:
        {
            "messageId": "...",
            "conversationId": "...",
            "content": "assistant response text",
            "citations": [...],
            "timestamp": "ISO timestamp"
        }
        """
        try:
            chat_request = await _parse_chat_request()
            conversation_id = _resolve_conversation(chat_request)

            logger.info(
                "chat_request_received",
                conversation_id=conversation_id,
                message_length=len(chat_request.message),
                stream=False,
            )

            conversations.create_message(conversation_id, "user", chat_request.message)

            rag_response = await rag_service.answer(chat_request.message)

            assistant_message = conversations.create_message(
                conversation_id,
                "assistant",
                rag_response.answer,
                rag_response.citations,
            )

            logger.info(
                "chat_response_sent",
                conversation_id=conversation_id,
                response_length=len(rag_response.answer),
                citation_count=len(rag_response.citations),
            )

            return jsonify({
                "messageId": assistant_message.id,
                "conversationId": conversation_id,
                "content": rag_response.answer,
                "citations": [c.to_dict() for c in rag_response.citations],
                "timestamp": assistant_message.timestamp.isoformat(),
            })

        except ValidationError as e:
            logger.warning("chat_validation_failed", errors=e.error_count())
            return _validation_error_response(e)
        except NotFoundError as e:
            return jsonify({"error": str(e)}), 404
        except Exception as e:
            logger.error("chat_endpoint_error", error=str(e), error_type=type(e).__name__)
            return _server_error_response("Failed to process message", e)

    @app.route("/api/chat/stream", methods=["POST"])
    async def chat_stream():
        """Answer a message with RAG as a Server-Sent-Events stream.

        Frames, each sent as ``data: <json>``:
            {"type": "init", "conversationId": "...", "citations": [...]}
            {"type": "token", "content": "..."}            (repeated)
            {"type": "done", "messageId": "...", "timestamp": "..."}
        or {"type": "error", "error": "..."} if the answer fails mid-stream.
        """
        try:
            chat_request = await _parse_chat_request()
            conversation_id = _resolve_conversation(chat_request)

            logger.info(
                "chat_request_received",
                conversation_id=conversation_id,
                message_length=len(chat_request.message),
                stream=True,
            )

            conversations.create_message(conversation_id, "user", chat_request.message)

        except ValidationError as e:
            logger.warning("chat_validation_failed", errors=e.error_count())
            return _validation_error_response(e)
        except NotFoundError as e:
            return jsonify({"error": str(e)}), 404
        except Exception as e:
            logger.error("chat_stream_endpoint_error", error=str(e), error_type=type(e).__name__)
            return _server_error_response("Failed to process message", e)

        async def send_events():
            content_parts = []
            citations = []
            try:
                async for event in rag_service.answer_stream(chat_request.message):
                    if event.type == CITATIONS_EVENT:
                        citations = event.data
                        yield _sse_frame({
                            "type": "init",
                            "conversationId": conversation_id,
                            "citations": [c.to_dict() for c in citations],
                        })
                    elif event.type == TOKEN_EVENT:
                        content_parts.append(event.data)
                        yield _sse_frame({"type": "token", "content": event.data})

                assistant_message = conversations.create_message(
                    conversation_id, "assistant", "".join(content_parts), citations
                )

                logger.info(
                    "chat_stream_completed",
                    conversation_id=conversation_id,
                    response_length=sum(len(p) for p in content_parts),
                    citation_count=len(citations),
                )

                yield _sse_frame({
                    "type": "done",
                    "messageId": assistant_message.id,
                    "timestamp": assistant_message.timestamp.isoformat(),
                })

            except Exception as e:
                logger.error(
                    "chat_stream_error",
                    conversation_id=conversation_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                yield _sse_frame({"type": "error", "error": str(e)})

        response = await make_response(
            send_events(),
            200,
            {
                "Content-Type": "text/event-stream",
                "Cache-Control": "no-cache",
            },
        )
        response.timeout = None
        return response

    @app.route("/api/documents", methods=["GET"])
    async def list_documents():
        """List indexable files from the document source.

        Returns JSON:
        {"files": [{"id", "name", "mimeType", "size", "modifiedTime"}, ...]}
        """
        try:
            files = await drive_client.list_files()
            return jsonify({"files": files})
        except Exception as e:
            logger.error("documents_list_error", error=str(e))
            return _server_error_response("Failed to list documents", e)

    @app.route("/api/documents/process", methods=["POST"])
    async def process_document():
        """Index one drive file.

        Expects JSON body: {"fileId": "...", "fileName": "..."}

        Returns JSON: {"documentId": "...", "chunksProcessed": 3, "status": "success"}
        """
        try:
            data = await request.get_json(silent=True)
            process_request = ProcessDocumentRequest.model_validate(
                data if data is not None else {}
            )

            logger.info(
                "document_process_requested",
                file_id=process_request.file_id,
                file_name=process_request.file_name,
            )

            result = await ingest_pipeline.index_document(process_request.file_id)

            return jsonify({
                "documentId": result["documentId"],
                "chunksProcessed": result["chunksProcessed"],
                "status": "success",
            })

        except ValidationError as e:
            return _validation_error_response(e)
        except Exception as e:
            logger.error("document_process_error", error=str(e), error_type=type(e).__name__)
            return _server_error_response("Failed to process document", e)

    @app.route("/api/stats", methods=["GET"])
    async def stats():
        """Report index statistics: {"totalChunks": n, "uniqueDocuments": m}."""
        try:
            return jsonify(ingest_pipeline.get_index_stats())
        except Exception as e:
            logger.error("stats_error", error=str(e))
            return _server_error_response("Failed to get statistics", e)

    @app.route("/api/conversations/<conversation_id>/messages", methods=["GET"])
    async def get_conversation_messages(conversation_id: str):
        """Get all messages for a conversation in chronological order."""
        try:
            messages = conversations.get_messages(conversation_id)
            return jsonify({"messages": [m.to_dict() for m in messages]})
        except Exception as e:
            logger.error("messages_get_error", error=str(e), conversation_id=conversation_id)
            return _server_error_response("Failed to get messages", e)

    @app.route("/health/ready")
    async def health_ready():
        """Readiness probe - check the completion provider is reachable."""
        checks = {
            "status": "healthy",
            "provider": False,
            "index": ingest_pipeline.get_index_stats(),
        }

        try:
            await llm_client.list_models()
            checks["provider"] = True
            return jsonify(checks), 200

        except Exception as e:
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
        """Handle 404 errors."""
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(500)
    async def internal_error(error):
        """Handle 500 errors."""
        logger.error("internal_server_error", error=str(error))
        return jsonify({"error": "Internal server error"}), 500

    return app


app = create_app()


if __name__ == "__main__":
    # For development - run under hypercorn in production
    app.run(host="0.0.0.0", port=5000, debug=True)
