"""Shared test fixtures."""
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import List

import pytest

from notesync.db.engine import VaultDatabase
from notesync.notify.notifier import Notifier
from notesync.sync.service import VaultSyncService
from notesync.vault.source import VaultSource

T0 = datetime(2024, 1, 15, 7, 30, tzinfo=timezone.utc)


class RecordingNotifier(Notifier):
    """Collects notification texts instead of delivering them."""

    def __init__(self):
        self.messages: List[str] = []

    async def notify(self, message: str) -> None:
        self.messages.append(message)


def write_note(root: Path, rel_path: str, text: str, mtime: datetime = T0) -> Path:
    """Write a note and pin its modification time."""
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    ts = mtime.timestamp()
    os.utime(path, (ts, ts))
    return path


@pytest.fixture(name="vault_path")
def vault_path_fixture(tmp_path) -> Path:
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture(name="database")
def database_fixture():
    """In-memory SQLite destination with the obsidian namespace attached."""
    db = VaultDatabase("sqlite://")
    yield db
    db.close()


@pytest.fixture(name="source")
def source_fixture(vault_path) -> VaultSource:
    return VaultSource(vault_path)


@pytest.fixture(name="service")
def service_fixture(source, database) -> VaultSyncService:
    return VaultSyncService(source=source, database=database)


@pytest.fixture(name="notifier")
def notifier_fixture() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture(name="note")
def note_fixture(vault_path):
    """Callable that writes a note into the test vault: note(rel_path, text, mtime)."""

    def _write(rel_path: str, text: str = "", mtime: datetime = T0) -> Path:
        return write_note(vault_path, rel_path, text, mtime)

    return _write
