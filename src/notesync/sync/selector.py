"""Change selection: which notes changed since the last sync."""
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from notesync.models.record import NotePage


def _as_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def select_changed(
    pages: Iterable[NotePage], watermark: Optional[datetime]
) -> List[NotePage]:
    """
    Return the pages modified at or after ``watermark``.

    The comparison is inclusive: a page modified exactly at the watermark is
    uploaded again rather than risk missing an update. Duplicates are fine
    because the destination is append-only.

    Args:
        pages: Snapshot of every note in the vault.
        watermark: Max capture timestamp already persisted, or None when the
            destination is empty (every page is selected). Naive datetimes
            are treated as UTC.

    Returns:
        The selected pages, in input order.
    """
    if watermark is None:
        return list(pages)
    lower = _as_utc(watermark)
    return [page for page in pages if _as_utc(page.mtime) >= lower]
