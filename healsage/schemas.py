"""Request bodies accepted by the HTTP API."""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from healsage import config


class ChatRequest(BaseModel):
    """Body of POST /api/chat and POST /api/chat/stream."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    message: str = Field(..., min_length=1, max_length=config.MAX_MESSAGE_LENGTH)
    conversation_id: Optional[str] = Field(default=None, alias="conversationId")


class ProcessDocumentRequest(BaseModel):
    """Body of POST /api/documents/process."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    file_id: str = Field(..., min_length=1, alias="fileId")
    file_name: str = Field(..., min_length=1, alias="fileName")


def validation_details(error: ValidationError) -> List[Dict[str, Any]]:
    """Flatten a pydantic error into field/message pairs for the response body."""
    return [
        {
            "field": ".".join(str(part) for part in err["loc"]) or "body",
            "message": err["msg"],
        }
        for err in error.errors()
    ]
