"""
Journal store: the only component that persists entries and settings.

The store keeps the entries collection and the settings record in two
JSON files and exposes CRUD, import and export on top of them. Reads
degrade to an empty collection or default settings when the files are
unreadable; writes never do.
"""

import asyncio
from datetime import date
from typing import List, Dict, Optional, Any

from pydantic import TypeAdapter, ValidationError

from ..core.logging import get_logger, log_error_with_context
from ..core.exceptions import (
    StorageIOError, PersistenceError, EntryNotFoundError, DuplicateEntryError
)
from ..settings import StorageSettings
from .schemas import (
    Entry, EntryDraft, EntryPatch, Mood, Settings, BackupEnvelope,
    MoodSummary, duplicate_ids, merge_settings, utc_timestamp
)
from .storage import JsonFileStorage
from . import stats


logger = get_logger(__name__)

_entries_adapter = TypeAdapter(List[Entry])


class JournalStore:
    """
    File-backed store for journal entries and settings.

    Writes to the same collection are serialized with a per-collection
    lock; entries and settings are independent and may be written
    concurrently.
    """

    def __init__(self, settings: StorageSettings) -> None:
        """
        Initialize the store.

        Args:
            settings: Storage settings
        """
        self.settings = settings
        settings.data_dir.mkdir(parents=True, exist_ok=True)

        self._entries_file = JsonFileStorage(settings.entries_path, settings.io_timeout)
        self._settings_file = JsonFileStorage(settings.settings_path, settings.io_timeout)
        self._entries_lock = asyncio.Lock()
        self._settings_lock = asyncio.Lock()

        logger.info(f"Initialized journal store in {settings.data_dir}")

    # Entries

    async def _load_entries(self) -> List[Entry]:
        """
        Read the entries collection strictly.

        Raises:
            StorageIOError: If the file is unreadable or not a list of entries
        """
        raw = await self._entries_file.read(default=[])
        try:
            return _entries_adapter.validate_python(raw)
        except ValidationError as e:
            raise StorageIOError(
                f"Entries file has an invalid shape: {e.error_count()} errors",
                path=str(self._entries_file.path)
            ) from e

    async def _load_entries_for_write(self) -> List[Entry]:
        try:
            return await self._load_entries()
        except StorageIOError as e:
            raise PersistenceError(
                f"Refusing to write entries, current collection unreadable: {e.message}",
                path=e.path
            ) from e

    async def _commit_entries(self, entries: List[Entry]) -> None:
        await self._entries_file.write(
            [entry.model_dump(mode="json") for entry in entries]
        )

    async def list_entries(self) -> List[Entry]:
        """
        Return the full collection in stored order.

        Returns:
            Entries, or an empty list if the file cannot be read
        """
        try:
            return await self._load_entries()
        except StorageIOError as e:
            log_error_with_context(e, {"path": e.path}, module=__name__)
            return []

    async def add_entry(self, draft: EntryDraft) -> Entry:
        """
        Create an entry and prepend it to the collection.

        Args:
            draft: Caller-provided content and mood

        Returns:
            The stored entry, including its assigned id and date

        Raises:
            PersistenceError: If the collection could not be committed
        """
        async with self._entries_lock:
            entries = await self._load_entries_for_write()
            entry = draft.to_entry()
            await self._commit_entries([entry, *entries])

        logger.info(f"Added entry {entry.id} ({entry.mood.value})")
        return entry

    async def apply_entry_update(self, entry_id: str, patch: EntryPatch) -> Entry:
        """
        Merge a patch into an existing entry.

        Args:
            entry_id: Id of the entry to update
            patch: Fields to replace

        Returns:
            The updated entry

        Raises:
            EntryNotFoundError: If no entry has this id (nothing is written)
            PersistenceError: If the collection could not be committed
        """
        async with self._entries_lock:
            entries = await self._load_entries_for_write()
            for index, entry in enumerate(entries):
                if entry.id == entry_id:
                    break
            else:
                raise EntryNotFoundError(entry_id)

            updated = patch.apply(entry)
            entries[index] = updated
            await self._commit_entries(entries)

        logger.info(f"Updated entry {entry_id}: {sorted(patch.changes())}")
        return updated

    async def update_entry(self, entry_id: str, patch: EntryPatch) -> bool:
        """
        Merge a patch into an existing entry.

        Returns:
            True once persisted, False on unknown id or write failure
        """
        try:
            await self.apply_entry_update(entry_id, patch)
            return True
        except EntryNotFoundError:
            logger.warning(f"Cannot update unknown entry {entry_id}")
            return False
        except PersistenceError as e:
            log_error_with_context(e, {"entry_id": entry_id}, module=__name__)
            return False

    async def delete_entry(self, entry_id: str) -> bool:
        """
        Remove an entry. Deleting an unknown id is not an error.

        Returns:
            True once the remaining collection is persisted
        """
        try:
            async with self._entries_lock:
                entries = await self._load_entries_for_write()
                remaining = [entry for entry in entries if entry.id != entry_id]
                await self._commit_entries(remaining)
        except PersistenceError as e:
            log_error_with_context(e, {"entry_id": entry_id}, module=__name__)
            return False

        if len(remaining) == len(entries):
            logger.debug(f"Delete of unknown entry {entry_id} left collection unchanged")
        else:
            logger.info(f"Deleted entry {entry_id}")
        return True

    async def replace_entries(self, entries: List[Entry]) -> bool:
        """
        Overwrite the whole collection.

        Returns:
            True once persisted, False on write failure

        Raises:
            DuplicateEntryError: If two entries share an id (nothing is written)
        """
        duplicates = duplicate_ids(entries)
        if duplicates:
            raise DuplicateEntryError(duplicates)

        try:
            async with self._entries_lock:
                await self._commit_entries(entries)
        except PersistenceError as e:
            log_error_with_context(e, {"count": len(entries)}, module=__name__)
            return False

        logger.info(f"Replaced entries collection ({len(entries)} entries)")
        return True

    async def search_entries(
        self,
        query: Optional[str] = None,
        mood: Optional[Mood] = None
    ) -> List[Entry]:
        """Entries matching a content query and/or mood, stored order kept."""
        return stats.filter_entries(await self.list_entries(), query, mood)

    # Settings

    async def get_settings(self) -> Settings:
        """
        Return the stored settings merged over the defaults.

        Returns:
            Complete settings; pure defaults if nothing is stored or readable
        """
        try:
            stored = await self._settings_file.read(default=None)
        except StorageIOError as e:
            log_error_with_context(e, {"path": e.path}, module=__name__)
            stored = None
        return merge_settings(stored)

    async def _commit_settings(self, settings: Settings) -> None:
        async with self._settings_lock:
            await self._settings_file.write(settings.to_json())

    async def save_settings(self, settings: Settings) -> bool:
        """
        Persist the settings record as given.

        Returns:
            True once persisted
        """
        try:
            await self._commit_settings(settings)
        except PersistenceError as e:
            log_error_with_context(e, {}, module=__name__)
            return False

        logger.info("Saved settings")
        return True

    # Backup

    async def export_snapshot(self) -> BackupEnvelope:
        """Snapshot current entries and settings with a fresh export date."""
        entries, settings = await asyncio.gather(self.list_entries(), self.get_settings())
        return BackupEnvelope(entries=entries, settings=settings, export_date=utc_timestamp())

    async def import_snapshot(self, envelope: BackupEnvelope) -> None:
        """
        Replace entries and/or settings with the envelope's contents.

        Each collection present in the envelope is replaced wholesale;
        absent ones are left untouched.

        Raises:
            PersistenceError: If a present collection could not be committed
        """
        if envelope.entries is not None:
            async with self._entries_lock:
                await self._commit_entries(envelope.entries)
            logger.info(f"Imported {len(envelope.entries)} entries")

        if envelope.settings is not None:
            await self._commit_settings(envelope.settings)
            logger.info("Imported settings")

    # Aggregates

    async def mood_summary(self, today: Optional[date] = None) -> MoodSummary:
        return stats.summarize(await self.list_entries(), today)

    async def calendar_month(self, year: int, month: int) -> Dict[str, List[Entry]]:
        return stats.group_by_day(await self.list_entries(), year, month)

    def get_store_info(self) -> Dict[str, Any]:
        """Paths and limits of the store, for status output."""
        return {
            "data_dir": str(self.settings.data_dir),
            "entries_file": str(self.settings.entries_path),
            "settings_file": str(self.settings.settings_path),
            "io_timeout": self.settings.io_timeout
        }
