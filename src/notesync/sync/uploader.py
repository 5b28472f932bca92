"""
Record normalization and upload.

Each candidate page becomes one ``obsidian.file`` row:

  path               vault-relative path
  timestamp          capture time of this upload (not the file's mtime)
  file_metadata      the file identity (size, ctime, mtime, tags, ...)
  dataview_metadata  front matter + inline fields, minus identity/position
  file_content       raw note text

Rows are inserted one statement at a time; the first failure stops the pass.
"""
import logging
from datetime import date, datetime, time
from typing import Any, Dict, Iterable, Optional

from notesync.models.record import FileRecord, NotePage, SyncOutcome

logger = logging.getLogger(__name__)

# Keys that duplicate file_metadata or describe where the data sat in the file.
STRIPPED_KEYS = ("file", "position")


def _jsonable(value: Any) -> Any:
    """Coerce YAML scalars (dates, times, sets) into JSON-serializable values."""
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(v) for v in value]
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return value


def format_timestamp(ts: datetime) -> str:
    """'YYYY-MM-DD HH:MM:SS+HH:MM'; naive values are taken as local time."""
    if ts.tzinfo is None:
        ts = ts.astimezone()
    return ts.isoformat(sep=" ", timespec="seconds")


def build_record(
    page: NotePage, content: str, now: Optional[datetime] = None
) -> FileRecord:
    """Normalize a page into a row, stamped with a fresh capture time."""
    timestamp = now or datetime.now().astimezone()
    if timestamp.tzinfo is None:
        timestamp = timestamp.astimezone()

    custom: Dict[str, Any] = {
        k: v for k, v in page.custom.items() if k not in STRIPPED_KEYS
    }
    return FileRecord(
        path=page.path,
        timestamp=timestamp,
        file_metadata=page.identity.model_dump(mode="json"),
        dataview_metadata=_jsonable(custom),
        file_content=content,
    )


class RecordUploader:
    """Inserts normalized records, halting at the first failure."""

    def __init__(self, source, database):
        """
        Args:
            source: VaultSource (anything with ``async load(path)``).
            database: VaultDatabase (anything with ``insert(record)``).
        """
        self.source = source
        self.database = database

    async def upload(self, pages: Iterable[NotePage]) -> SyncOutcome:
        outcome = SyncOutcome()
        pages = list(pages)
        outcome.selected = [p.path for p in pages]

        for page in pages:
            try:
                content = await self.source.load(page.path)
                record = build_record(page, content)
                self.database.insert(record)
            except Exception as exc:
                logger.error("Upload of %s failed: %s", page.path, exc)
                outcome.failed_path = page.path
                outcome.error = exc
                break
            outcome.inserted.append(page.path)
            logger.debug("Inserted %s at %s", page.path, format_timestamp(record.timestamp))

        outcome.finished_at = datetime.utcnow()
        return outcome
