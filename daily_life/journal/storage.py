"""
Whole-file JSON persistence with atomic replacement.
"""

import asyncio
import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

from ..core.logging import get_logger
from ..core.exceptions import StorageIOError, PersistenceError


logger = get_logger(__name__)


class _WriteAttempt:
    """Shared between a writer thread and the coroutine waiting for it."""

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.abandoned = False
        self.committed = False


class JsonFileStorage:
    """
    One JSON document stored in one file.

    Every write replaces the whole file: the document is written to a
    temporary file in the same directory, flushed to disk and renamed
    over the target, so readers only ever see a complete document.
    File access runs in a worker thread bounded by ``timeout``.
    """

    def __init__(self, path: Path, timeout: float) -> None:
        """
        Initialize the file storage.

        Args:
            path: Target JSON file
            timeout: Seconds before a read or write is abandoned
        """
        self.path = Path(path)
        self.timeout = timeout

    async def read(self, default: Any = None) -> Any:
        """
        Read and decode the document.

        Args:
            default: Value returned when the file does not exist yet

        Returns:
            Decoded JSON document

        Raises:
            StorageIOError: If the file cannot be read or decoded in time
        """
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._read_sync, default),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            raise StorageIOError(f"Timed out reading {self.path}", path=str(self.path))

    async def write(self, data: Any) -> None:
        """
        Replace the document.

        A write that times out is abandoned: the worker thread keeps
        running but will not replace the target once the caller has
        given up, so a reported failure never lands on disk later.

        Args:
            data: JSON-serializable document

        Raises:
            PersistenceError: If the document could not be committed in time
        """
        attempt = _WriteAttempt()
        try:
            await asyncio.wait_for(
                asyncio.to_thread(self._write_sync, data, attempt),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            with attempt.lock:
                attempt.abandoned = True
                committed = attempt.committed
            if committed:
                logger.warning(f"Write to {self.path} finished at the timeout, keeping it")
                return
            raise PersistenceError(f"Timed out writing {self.path}", path=str(self.path))

    def _read_sync(self, default: Any) -> Any:
        if not self.path.exists():
            return default
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StorageIOError(f"Cannot read {self.path}: {e}", path=str(self.path)) from e

    def _write_sync(self, data: Any, attempt: _WriteAttempt) -> None:
        try:
            payload = json.dumps(data, ensure_ascii=False, indent=2)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Cannot serialize data for {self.path}: {e}", path=str(self.path)) from e

        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())

            # Commit and abandonment are decided under the same lock
            with attempt.lock:
                if attempt.abandoned:
                    logger.warning(f"Discarding timed-out write to {self.path}")
                    return
                os.replace(tmp_name, self.path)
                attempt.committed = True
            tmp_name = None
        except OSError as e:
            raise PersistenceError(f"Cannot write {self.path}: {e}", path=str(self.path)) from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.warning(f"Could not remove temporary file {tmp_name}")

        logger.debug(f"Wrote {len(payload)} bytes to {self.path}")
