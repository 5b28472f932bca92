"""
Vault source: reads notes, their metadata, and their content from disk.

Provides the three lookups the sync needs:

  - pages()        every note with its file identity and custom metadata
  - load(path)     raw text of one note
  - active_path()  the "current" note (configured, else most recently modified)

Custom metadata is the YAML front matter merged with Dataview-style inline
fields (``key:: value`` lines). Paths are vault-relative POSIX strings.
"""
import asyncio
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import frontmatter
import yaml

from notesync.models.record import FileIdentity, NotePage

logger = logging.getLogger(__name__)

NOTE_SUFFIX = ".md"

_TAG_RE = re.compile(r"(?<![\w/#])#([A-Za-z0-9_/-]*[A-Za-z_/-][A-Za-z0-9_/-]*)")
_LINK_RE = re.compile(r"\[\[([^\]|#]+)(?:#[^\]|]*)?(?:\|[^\]]+)?\]\]")
_INLINE_FIELD_RE = re.compile(r"^([A-Za-z][\w -]*?)::\s*(.*)$")


def _as_list(value: Any, separators: str = r",") -> List[str]:
    """Front matter lists may be YAML lists or separator-delimited strings."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    return [v.strip() for v in re.split(separators, str(value)) if v.strip()]


def _timestamp(epoch: float) -> datetime:
    return datetime.fromtimestamp(epoch, tz=timezone.utc)


def parse_note(text: str) -> Tuple[Dict[str, Any], str]:
    """Split a note into (front matter, body). Malformed front matter is ignored."""
    try:
        post = frontmatter.loads(text)
    except yaml.YAMLError as exc:
        logger.warning("Ignoring malformed front matter: %s", exc)
        return {}, text
    return dict(post.metadata), post.content


def extract_inline_fields(body: str) -> Dict[str, str]:
    fields: Dict[str, str] = {}
    in_code = False
    for line in body.splitlines():
        stripped = line.strip()
        if stripped.startswith("```"):
            in_code = not in_code
            continue
        if in_code:
            continue
        m = _INLINE_FIELD_RE.match(stripped)
        if m:
            fields[m.group(1).strip()] = m.group(2).strip()
    return fields


def extract_tags(front: Dict[str, Any], body: str) -> List[str]:
    tags = [t.lstrip("#") for t in _as_list(front.get("tags", front.get("tag")), r"[,\s]+")]
    tags += _TAG_RE.findall(body)
    seen = []
    for tag in tags:
        tag = f"#{tag}"
        if tag not in seen:
            seen.append(tag)
    return seen


def extract_links(body: str) -> List[str]:
    links = []
    for target in _LINK_RE.findall(body):
        target = target.strip()
        if target and target not in links:
            links.append(target)
    return links


class VaultSource:
    """Reads notes from a vault directory."""

    def __init__(self, vault_path: Path, active_file: Optional[str] = None):
        self.vault_path = Path(vault_path)
        self.active_file = active_file

    def _note_files(self) -> List[Path]:
        files = []
        for path in self.vault_path.rglob(f"*{NOTE_SUFFIX}"):
            rel = path.relative_to(self.vault_path)
            # .obsidian, .trash and other hidden folders are not notes
            if any(part.startswith(".") for part in rel.parts):
                continue
            if path.is_file():
                files.append(path)
        return sorted(files)

    def _relative(self, path: Path) -> str:
        return path.relative_to(self.vault_path).as_posix()

    def _resolve(self, rel_path: str) -> Path:
        return self.vault_path / rel_path

    def pages(self) -> List[NotePage]:
        pages = [self._build_page(p) for p in self._note_files()]
        logger.debug("Read %d notes from %s", len(pages), self.vault_path)
        return pages

    def has_page(self, rel_path: str) -> bool:
        return self._resolve(rel_path).is_file()

    def page(self, rel_path: str) -> NotePage:
        path = self._resolve(rel_path)
        if not path.is_file():
            raise FileNotFoundError(f"No note at {rel_path}")
        return self._build_page(path)

    async def load(self, rel_path: str) -> str:
        """Raw text of a note."""
        path = self._resolve(rel_path)
        return await asyncio.to_thread(path.read_text, encoding="utf-8")

    def active_path(self) -> Optional[str]:
        if self.active_file:
            return self.active_file
        files = self._note_files()
        if not files:
            return None
        latest = max(files, key=lambda p: p.stat().st_mtime)
        return self._relative(latest)

    def _build_page(self, path: Path) -> NotePage:
        rel = self._relative(path)
        stat = path.stat()
        # metadata only; load() reads the stored content strictly
        text = path.read_text(encoding="utf-8", errors="replace")
        front, body = parse_note(text)

        folder = Path(rel).parent.as_posix()
        identity = FileIdentity(
            path=rel,
            name=path.stem,
            folder="" if folder == "." else folder,
            ext=path.suffix.lstrip("."),
            size=stat.st_size,
            ctime=_timestamp(stat.st_ctime),
            mtime=_timestamp(stat.st_mtime),
            tags=extract_tags(front, body),
            aliases=_as_list(front.get("aliases", front.get("alias"))),
            outlinks=extract_links(body),
        )

        custom: Dict[str, Any] = dict(front)
        for key, value in extract_inline_fields(body).items():
            custom.setdefault(key, value)
        return NotePage(path=rel, identity=identity, custom=custom)
