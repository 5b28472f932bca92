"""
VaultSyncService: coordinates vault → database sync passes.

Flow for "upload modified files":
  1. Connect (first use only) and read the watermark: max(timestamp)
  2. Select every note with mtime >= watermark (all notes if the table is empty)
  3. Insert selected notes one by one, stopping at the first failure

Passes are serialized on a single asyncio.Lock so two commands never
interleave statements on the shared connection. The service returns a
SyncOutcome and never notifies; see notesync.commands for that.
"""
import asyncio
import logging
from typing import Iterable, Optional

from notesync.exceptions import NoActiveFileError
from notesync.models.record import SyncOutcome
from notesync.sync.selector import select_changed
from notesync.sync.uploader import RecordUploader

logger = logging.getLogger(__name__)


class VaultSyncService:
    """Single-flight sync coordinator over one owned database connection."""

    def __init__(self, source, database):
        """
        Args:
            source: VaultSource for notes and content.
            database: VaultDatabase; the service uses it but the caller owns it.
        """
        self.source = source
        self.database = database
        self.uploader = RecordUploader(source, database)
        self.last_outcome: Optional[SyncOutcome] = None
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def upload_current(self) -> SyncOutcome:
        """Upload the active note as a single record."""
        path = self.source.active_path()
        if not path:
            raise NoActiveFileError("No active file to upload")
        if not self.source.has_page(path):
            raise NoActiveFileError(f"Active file {path} not found")
        return await self.upload_paths([path])

    async def upload_paths(self, paths: Iterable[str]) -> SyncOutcome:
        async with self._lock:
            self.database.connect()
            pages = [self.source.page(p) for p in paths]
            return self._finish(await self.uploader.upload(pages))

    async def upload_modified(self) -> SyncOutcome:
        """Upload every note modified since the last recorded capture."""
        async with self._lock:
            self.database.connect()
            watermark = self.database.watermark()
            pages = select_changed(self.source.pages(), watermark)
            logger.info(
                "Selected %d modified notes (watermark=%s)",
                len(pages),
                watermark.isoformat() if watermark else "none",
            )
            return self._finish(await self.uploader.upload(pages))

    def _finish(self, outcome: SyncOutcome) -> SyncOutcome:
        self.last_outcome = outcome
        logger.info(
            "Sync pass %s: %d/%d inserted",
            outcome.status,
            outcome.inserted_count,
            len(outcome.selected),
        )
        return outcome
