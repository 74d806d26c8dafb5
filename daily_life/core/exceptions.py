"""
Custom exceptions for the Daily Life Recorder application.

This module defines application-specific exceptions shared by the store,
the HTTP server and the client cache.
"""

from typing import Optional, Dict, Any, List


class DailyLifeError(Exception):
    """Base exception for all Daily Life Recorder errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class ConfigurationError(DailyLifeError):
    """Raised when there are configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None) -> None:
        super().__init__(message, "CONFIG_ERROR")
        self.config_key = config_key


class StorageIOError(DailyLifeError):
    """Raised when the backing storage cannot be read."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message, "STORAGE_IO_ERROR", {"path": path})
        self.path = path


class PersistenceError(DailyLifeError):
    """Raised when a write to the backing storage cannot be committed."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message, "PERSISTENCE_ERROR", {"path": path})
        self.path = path


class EntryNotFoundError(DailyLifeError):
    """Raised when an entry id does not exist in the collection."""

    def __init__(self, entry_id: str) -> None:
        super().__init__(f"Entry not found: {entry_id}", "NOT_FOUND", {"id": entry_id})
        self.entry_id = entry_id


class MalformedImportError(DailyLifeError):
    """Raised when an import payload is not valid JSON or has the wrong shape."""

    def __init__(self, message: str, reason: Optional[str] = None) -> None:
        super().__init__(message, "MALFORMED_IMPORT", {"reason": reason})
        self.reason = reason


class DataServiceError(DailyLifeError):
    """Raised when a request to the data server fails."""

    def __init__(
        self,
        message: str,
        response_code: Optional[int] = None,
        endpoint: Optional[str] = None
    ) -> None:
        super().__init__(message, "DATA_SERVICE_ERROR")
        self.response_code = response_code
        self.endpoint = endpoint


class DuplicateEntryError(DailyLifeError):
    """Raised when a collection would hold two entries with the same id."""

    def __init__(self, entry_ids: List[str]) -> None:
        super().__init__(
            f"Duplicate entry ids: {', '.join(entry_ids)}", "DUPLICATE_ID", {"ids": entry_ids}
        )
        self.entry_ids = entry_ids
