"""Google Drive client for listing and downloading source documents.

Access tokens expire, so the client asks its token provider for a token on
every call instead of caching an authorized session.
"""
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx
import structlog

from healsage import config
from healsage.errors import ProviderError

logger = structlog.get_logger()

FILE_FIELDS = "id, name, mimeType, size, modifiedTime"

TokenProvider = Callable[[], Awaitable[str]]


async def static_token_provider() -> str:
    """Return the access token from configuration."""
    if not config.GOOGLE_DRIVE_ACCESS_TOKEN:
        raise ProviderError("Google Drive not connected: no access token configured")
    return config.GOOGLE_DRIVE_ACCESS_TOKEN


class DriveClient:
    """Async client for the Google Drive v3 REST API."""

    def __init__(
        self,
        token_provider: Optional[TokenProvider] = None,
        base_url: str = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the drive client.

        Args:
            token_provider: Async callable returning a fresh OAuth access token
            base_url: Drive API base URL (defaults to config.GOOGLE_DRIVE_BASE_URL)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.token_provider = token_provider or static_token_provider
        self.base_url = (base_url or config.GOOGLE_DRIVE_BASE_URL).rstrip("/")
        self.timeout = timeout or config.DRIVE_TIMEOUT
        self.transport = transport

    async def _client(self) -> httpx.AsyncClient:
        token = await self.token_provider()
        return httpx.AsyncClient(
            timeout=self.timeout,
            transport=self.transport,
            headers={"Authorization": f"Bearer {token}"},
        )

    async def list_files(self, query: Optional[str] = None) -> List[Dict[str, Any]]:
        """List indexable files.

        Args:
            query: Drive search query (defaults to config.DRIVE_FILE_QUERY)

        Returns:
            List of file dicts with id, name, mimeType, size, modifiedTime
        """
        params = {
            "q": query or config.DRIVE_FILE_QUERY,
            "fields": f"files({FILE_FIELDS})",
            "pageSize": config.DRIVE_PAGE_SIZE,
        }

        try:
            async with await self._client() as client:
                response = await client.get(f"{self.base_url}/files", params=params)
                response.raise_for_status()
                files = response.json().get("files") or []
        except httpx.HTTPError as e:
            logger.error("drive_list_files_error", error=str(e))
            raise ProviderError(f"Failed to list drive files: {e}") from e
        except (ValueError, AttributeError) as e:
            logger.error("drive_list_files_malformed_response", error=str(e))
            raise ProviderError(f"Failed to list drive files: malformed response: {e}") from e

        logger.info("drive_files_listed", count=len(files))
        return files

    async def get_file_metadata(self, file_id: str) -> Dict[str, Any]:
        """Fetch metadata for a single file."""
        try:
            async with await self._client() as client:
                response = await client.get(
                    f"{self.base_url}/files/{file_id}", params={"fields": FILE_FIELDS}
                )
                response.raise_for_status()
                return response.json()
        except httpx.HTTPError as e:
            logger.error("drive_metadata_error", file_id=file_id, error=str(e))
            raise ProviderError(f"Failed to fetch file metadata: {e}") from e
        except ValueError as e:
            logger.error("drive_metadata_malformed_response", file_id=file_id, error=str(e))
            raise ProviderError(f"Failed to fetch file metadata: malformed response: {e}") from e

    async def download_file(self, file_id: str) -> bytes:
        """Download the raw bytes of a file."""
        try:
            async with await self._client() as client:
                response = await client.get(
                    f"{self.base_url}/files/{file_id}", params={"alt": "media"}
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("drive_download_error", file_id=file_id, error=str(e))
            raise ProviderError(f"Failed to download file: {e}") from e

        logger.info("drive_file_downloaded", file_id=file_id, size=len(response.content))
        return response.content
