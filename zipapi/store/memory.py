"""In-memory store implementation."""

import threading
from collections.abc import Sequence

from zipapi.core.logger import LogIcon, logger
from zipapi.models.core import UploadedFile
from zipapi.store.base import Store


class MemoryStore(Store):
    """Keeps every saved file in a process-local list guarded by a lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._saved: list[UploadedFile] = []

    @property
    def saved_files(self) -> tuple[UploadedFile, ...]:
        """Snapshot of everything saved so far."""
        with self._lock:
            return tuple(self._saved)

    async def init(self) -> None:
        logger.info("Memory store ready", icon=LogIcon.DATABASE)

    async def save(self, files: Sequence[UploadedFile]) -> None:
        batch = list(files)
        with self._lock:
            self._saved.extend(batch)
        logger.info("Files saved", icon=LogIcon.DATABASE, files=len(batch))
