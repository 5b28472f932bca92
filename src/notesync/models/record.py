"""Note record models: extracted pages, normalized rows, and sync outcomes."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlmodel import Field, SQLModel


class FileIdentity(SQLModel):
    """System-provided attributes of a note file (stored as ``file_metadata``)."""

    path: str
    name: str
    folder: str = ""
    ext: str = "md"
    size: int = 0
    ctime: datetime
    mtime: datetime
    tags: List[str] = Field(default_factory=list)
    aliases: List[str] = Field(default_factory=list)
    outlinks: List[str] = Field(default_factory=list)


@dataclass
class NotePage:
    """One note as extracted from the vault, before normalization.

    ``identity`` and ``custom`` are kept apart from the point of extraction;
    ``custom`` holds front matter and inline fields only.
    """

    path: str
    identity: FileIdentity
    custom: Dict[str, Any] = field(default_factory=dict)

    @property
    def mtime(self) -> datetime:
        return self.identity.mtime


@dataclass
class FileRecord:
    """A normalized row destined for ``obsidian.file``."""

    path: str
    timestamp: datetime  # capture time of the upload, tz-aware
    file_metadata: Dict[str, Any]
    dataview_metadata: Dict[str, Any]
    file_content: str


@dataclass
class SyncOutcome:
    """Result of one sync pass.

    Processing halts at the first failure, so ``inserted`` lists every record
    attempted before ``failed_path``.
    """

    selected: List[str] = field(default_factory=list)
    inserted: List[str] = field(default_factory=list)
    failed_path: Optional[str] = None
    error: Optional[BaseException] = None
    started_at: datetime = field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def inserted_count(self) -> int:
        return len(self.inserted)

    @property
    def status(self) -> str:
        if self.ok:
            return "success"
        return "partial" if self.inserted else "error"
