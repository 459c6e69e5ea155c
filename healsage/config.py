"""Application configuration with sensible defaults."""
import os

# Completion / embedding provider (OpenAI-compatible API)
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
CHAT_MODEL = os.getenv("CHAT_MODEL", "gpt-5")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
MAX_COMPLETION_TOKENS = int(os.getenv("MAX_COMPLETION_TOKENS", "8192"))
LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "120.0"))

# Google Drive document source
GOOGLE_DRIVE_BASE_URL = os.getenv("GOOGLE_DRIVE_BASE_URL", "https://www.googleapis.com/drive/v3")
GOOGLE_DRIVE_ACCESS_TOKEN = os.getenv("GOOGLE_DRIVE_ACCESS_TOKEN", "")
DRIVE_PAGE_SIZE = int(os.getenv("DRIVE_PAGE_SIZE", "100"))
DRIVE_FILE_QUERY = os.getenv(
    "DRIVE_FILE_QUERY", "mimeType='application/pdf' or mimeType='text/plain'"
)
DRIVE_TIMEOUT = float(os.getenv("DRIVE_TIMEOUT", "60.0"))

# RAG parameters (character-based)
CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "1000"))
CHUNK_OVERLAP = int(os.getenv("CHUNK_OVERLAP", "200"))
MIN_CHUNK_LENGTH = int(os.getenv("MIN_CHUNK_LENGTH", "50"))
RETRIEVAL_TOP_K = int(os.getenv("RETRIEVAL_TOP_K", "5"))

# Citations
CITATION_EXCERPT_LENGTH = int(os.getenv("CITATION_EXCERPT_LENGTH", "200"))
CITATION_CONFIDENCE = float(os.getenv("CITATION_CONFIDENCE", "0.85"))
# Report the retrieval similarity as confidence instead of the constant above
CITATION_CONFIDENCE_FROM_SCORE = os.getenv("CITATION_CONFIDENCE_FROM_SCORE", "false").lower() in (
    "1",
    "true",
    "yes",
)

# Request limits
MAX_MESSAGE_LENGTH = int(os.getenv("MAX_MESSAGE_LENGTH", "2000"))
CONVERSATION_TITLE_LENGTH = 50

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
