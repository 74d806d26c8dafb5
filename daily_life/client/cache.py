"""
Client-side cache of the journal for the presentation layer.

The cache mirrors the store's entries and settings. It never treats its
own copy as the source of truth: every write goes to the server first
and is applied locally only once the server has confirmed it.
"""

import asyncio
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Union

from ..core.logging import get_logger, log_error_with_context
from ..core.exceptions import DataServiceError, MalformedImportError
from ..journal.schemas import (
    Entry, EntryDraft, EntryPatch, Settings, MoodSummary,
    default_settings, merge_settings, parse_backup
)
from ..journal import stats
from .client import DataServiceClient
from .schemas import ExportArtifact


logger = get_logger(__name__)

ConfirmCallback = Callable[[str], bool]
NotifyCallback = Callable[[str], None]

LOAD_FAILED = "Failed to load data, please retry"
ADD_FAILED = "Failed to add entry, please retry"
UPDATE_FAILED = "Failed to update entry, please retry"
DELETE_FAILED = "Failed to delete entry, please retry"
SETTINGS_FAILED = "Failed to save settings, please retry"
EXPORT_FAILED = "Failed to export data, please retry"
IMPORT_FAILED = "Failed to import data, please check the file format"
BUSY = "Another operation is still in progress"
DELETE_PROMPT = "Delete this entry?"

# Undecodable or invalid server responses surface as ValueError
# (pydantic's ValidationError included).
_CLIENT_ERRORS = (DataServiceError, ValueError)


class JournalCache:
    """
    In-memory mirror of the store with a busy flag.

    Attributes:
        entries: Mirrored entries, most recent first
        settings: Mirrored settings, merged over defaults
        busy: True while a load or write is in flight
        last_error: Message of the most recent failure
    """

    def __init__(
        self,
        client: DataServiceClient,
        confirm: Optional[ConfirmCallback] = None,
        notify: Optional[NotifyCallback] = None
    ) -> None:
        """
        Initialize the cache.

        Args:
            client: Connected data service client
            confirm: Asked before every deletion; declines when not given
            notify: Receives user-visible failure messages
        """
        self.client = client
        self.confirm = confirm or (lambda message: False)
        self.notify = notify or (lambda message: None)

        self.entries: List[Entry] = []
        self.settings: Settings = default_settings()
        self.busy = False
        self.last_error: Optional[str] = None

    @contextmanager
    def _busy(self) -> Iterator[None]:
        self.busy = True
        try:
            yield
        finally:
            self.busy = False

    def _fail(self, message: str, error: Optional[Exception] = None) -> None:
        if error is not None:
            log_error_with_context(error, {"message": message}, module=__name__)
        else:
            logger.warning(message)
        self.last_error = message
        self.notify(message)

    def _reject_if_busy(self) -> bool:
        if self.busy:
            self._fail(BUSY)
            return True
        return False

    def get_entry(self, entry_id: str) -> Optional[Entry]:
        return next((entry for entry in self.entries if entry.id == entry_id), None)

    def mood_summary(self) -> MoodSummary:
        """Dashboard statistics computed from the mirrored entries."""
        return stats.summarize(self.entries)

    async def load(self) -> bool:
        """
        Replace the mirror with the server's entries and settings.

        Returns:
            True if the mirror was refreshed; on failure it is left as it was
        """
        if self._reject_if_busy():
            return False
        with self._busy():
            return await self._load()

    async def _load(self) -> bool:
        try:
            entries, raw_settings = await asyncio.gather(
                self.client.get_entries(),
                self.client.get_settings()
            )
        except _CLIENT_ERRORS as e:
            self._fail(LOAD_FAILED, e)
            return False

        # Merged again here in case the server predates a settings field
        self.entries = entries
        self.settings = merge_settings(raw_settings)
        logger.debug(f"Loaded {len(entries)} entries")
        return True

    async def add(self, draft: EntryDraft) -> Optional[Entry]:
        """
        Create an entry and prepend the server's copy to the mirror.

        Returns:
            The created entry, or None on failure
        """
        if self._reject_if_busy():
            return None
        with self._busy():
            try:
                entry = await self.client.add_entry(draft)
            except _CLIENT_ERRORS as e:
                self._fail(ADD_FAILED, e)
                return None

            self.entries = [entry, *self.entries]
            return entry

    async def update(self, entry_id: str, patch: EntryPatch) -> bool:
        """Update an entry and apply the same patch to the mirror once confirmed."""
        if self._reject_if_busy():
            return False
        with self._busy():
            try:
                await self.client.update_entry(entry_id, patch)
            except _CLIENT_ERRORS as e:
                self._fail(UPDATE_FAILED, e)
                return False

            self.entries = [
                patch.apply(entry) if entry.id == entry_id else entry
                for entry in self.entries
            ]
            return True

    async def remove(self, entry_id: str) -> bool:
        """
        Delete an entry after the user confirms.

        Returns:
            True if the entry was deleted; False if declined or failed
        """
        if self._reject_if_busy():
            return False
        if not self.confirm(DELETE_PROMPT):
            logger.debug(f"Deletion of {entry_id} declined")
            return False

        with self._busy():
            try:
                await self.client.delete_entry(entry_id)
            except _CLIENT_ERRORS as e:
                self._fail(DELETE_FAILED, e)
                return False

            self.entries = [entry for entry in self.entries if entry.id != entry_id]
            return True

    async def save_settings(self, settings: Settings) -> bool:
        """Persist settings and mirror them once confirmed."""
        if self._reject_if_busy():
            return False
        with self._busy():
            try:
                await self.client.save_settings(settings)
            except _CLIENT_ERRORS as e:
                self._fail(SETTINGS_FAILED, e)
                return False

            self.settings = settings
            return True

    async def import_and_reload(self, raw_json: Union[str, bytes]) -> bool:
        """
        Restore a backup, then reload the mirror from the server.

        The backup is validated before anything is sent. Once the import
        request has been issued the mirror is always reloaded, since the
        server may have replaced either collection.

        Returns:
            True if the import succeeded and the mirror was reloaded
        """
        if self._reject_if_busy():
            return False

        try:
            envelope = parse_backup(raw_json)
        except MalformedImportError as e:
            self._fail(IMPORT_FAILED, e)
            return False

        with self._busy():
            try:
                await self.client.import_data(envelope)
                imported = True
            except _CLIENT_ERRORS as e:
                self._fail(IMPORT_FAILED, e)
                imported = False

            reloaded = await self._load()

        if imported:
            logger.info("Backup imported")
        return imported and reloaded

    async def import_file(self, path: Path) -> bool:
        """Read a backup file to completion and import it."""
        try:
            raw_json = await asyncio.to_thread(Path(path).read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            self._fail(IMPORT_FAILED, e)
            return False
        return await self.import_and_reload(raw_json)

    async def export(self) -> Optional[ExportArtifact]:
        """Download a backup. The mirror is not touched."""
        try:
            return await self.client.export_data()
        except _CLIENT_ERRORS as e:
            self._fail(EXPORT_FAILED, e)
            return None
