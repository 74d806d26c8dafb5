"""
HTTP client for the journal data server.

This module provides the async client the cache uses to talk to the
data server. Every non-2xx response is reported as a DataServiceError.
"""

import re
import time
from typing import List, Dict, Any, Optional
from urllib.parse import quote

import httpx

from ..core.logging import get_logger, log_api_call
from ..core.exceptions import DataServiceError
from ..settings import ClientSettings
from ..journal.schemas import (
    Entry, EntryDraft, EntryPatch, Settings, BackupEnvelope, MoodSummary, backup_filename
)
from .schemas import ExportArtifact


logger = get_logger(__name__)

_FILENAME_PATTERN = re.compile(r'filename="?([^";]+)"?')


def _entry_path(entry_id: str) -> str:
    """Endpoint of one entry; ids may contain any character, including / ? and #."""
    return f"/entries/{quote(entry_id, safe='')}"


class DataServiceClient:
    """
    Async client for the data server API.

    Use as an async context manager, or call ``connect``/``disconnect``.
    """

    def __init__(
        self,
        settings: ClientSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> None:
        """
        Initialize the data service client.

        Args:
            settings: Client settings
            transport: Optional httpx transport (in-process app, mocks)
        """
        self.settings = settings
        self.transport = transport
        self.http_client: Optional[httpx.AsyncClient] = None

        logger.debug(f"Initialized data service client for {settings.base_url}")

    async def __aenter__(self) -> "DataServiceClient":
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.disconnect()

    async def connect(self) -> None:
        if self.http_client is None:
            self.http_client = httpx.AsyncClient(
                base_url=self.settings.base_url,
                timeout=self.settings.timeout,
                transport=self.transport
            )

    async def disconnect(self) -> None:
        if self.http_client:
            await self.http_client.aclose()
            self.http_client = None

    async def health(self) -> Dict[str, Any]:
        """Server health payload."""
        response = await self._make_request("GET", "/health")
        return response.json()

    async def get_entries(self) -> List[Entry]:
        """
        Fetch the full entries collection.

        Raises:
            DataServiceError: If the request fails
        """
        response = await self._make_request("GET", "/entries")
        return [Entry.model_validate(item) for item in response.json()]

    async def add_entry(self, draft: EntryDraft) -> Entry:
        """
        Create an entry.

        Returns:
            The stored entry with its assigned id and date

        Raises:
            DataServiceError: If the request fails
        """
        response = await self._make_request(
            "POST", "/entries/add", json=draft.model_dump(mode="json")
        )
        return Entry.model_validate(response.json())

    async def update_entry(self, entry_id: str, patch: EntryPatch) -> None:
        """
        Update an entry.

        Raises:
            DataServiceError: If the request fails (404 for an unknown id)
        """
        await self._make_request(
            "PUT", _entry_path(entry_id), json=patch.model_dump(mode="json", exclude_none=True)
        )

    async def delete_entry(self, entry_id: str) -> None:
        await self._make_request("DELETE", _entry_path(entry_id))

    async def get_settings(self) -> Dict[str, Any]:
        """
        Fetch the settings record as sent by the server.

        The raw mapping is returned so the caller can merge it over
        its own defaults.
        """
        response = await self._make_request("GET", "/settings")
        return response.json()

    async def save_settings(self, settings: Settings) -> None:
        await self._make_request("POST", "/settings", json=settings.to_json())

    async def export_data(self) -> ExportArtifact:
        """
        Download a backup.

        Returns:
            Backup text and its download file name
        """
        response = await self._make_request("GET", "/export")
        match = _FILENAME_PATTERN.search(response.headers.get("content-disposition", ""))
        filename = match.group(1) if match else backup_filename()
        return ExportArtifact(filename=filename, content=response.text)

    async def import_data(self, envelope: BackupEnvelope) -> None:
        await self._make_request("POST", "/import", json=envelope.to_json())

    async def get_mood_summary(self) -> MoodSummary:
        response = await self._make_request("GET", "/stats")
        return MoodSummary.model_validate(response.json())

    async def get_calendar_month(self, year: int, month: int) -> Dict[str, List[Entry]]:
        response = await self._make_request("GET", f"/calendar/{year}/{month}")
        return {
            day: [Entry.model_validate(item) for item in items]
            for day, items in response.json().items()
        }

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None
    ) -> httpx.Response:
        """
        Make an HTTP request to the data server.

        Args:
            method: HTTP method
            endpoint: API endpoint relative to the base URL
            params: Query parameters
            json: Request body

        Returns:
            The successful response

        Raises:
            DataServiceError: On transport errors and non-2xx responses
        """
        if not self.http_client:
            raise DataServiceError("Client not connected to data server", endpoint=endpoint)

        start_time = time.time()
        try:
            response = await self.http_client.request(method, endpoint, params=params, json=json)
            log_api_call(
                "data_server",
                method,
                url=endpoint,
                status_code=response.status_code,
                response_time=time.time() - start_time
            )
            response.raise_for_status()
            return response

        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error {e.response.status_code}: {e.response.text}")
            raise DataServiceError(
                f"Data server HTTP error: {e.response.status_code}",
                response_code=e.response.status_code,
                endpoint=endpoint
            )
        except httpx.RequestError as e:
            logger.error(f"Request error: {e}")
            raise DataServiceError(f"Data server request failed: {e}", endpoint=endpoint)
