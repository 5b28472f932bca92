"""
Integration tests for VaultSyncService and the operator commands.

Uses a temporary vault directory and an in-memory SQLite destination.
"""
import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError

from notesync import commands
from notesync.db.engine import VaultDatabase
from notesync.db.schema import file_table
from notesync.exceptions import (
    ConfigurationError,
    DatabaseConnectionError,
    NoActiveFileError,
    SyncError,
    UploadError,
)
from notesync.models.record import FileRecord
from notesync.sync.service import VaultSyncService
from notesync.vault.source import VaultSource

T0 = datetime(2024, 1, 15, 7, 30, tzinfo=timezone.utc)
T1 = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

NOTE_A = """---
status: draft
position: top
---
# A
"""


def rows(database):
    with database.connect().connect() as conn:
        return conn.execute(select(file_table).order_by(file_table.c.path)).all()


def seed_prior_record(database, timestamp):
    database.insert(FileRecord(
        path="prior.md",
        timestamp=timestamp,
        file_metadata={},
        dataview_metadata={},
        file_content="",
    ))


class TestUploadModified:
    @pytest.mark.asyncio
    async def test_empty_store_uploads_everything(self, service, database, note):
        note("a.md", NOTE_A, mtime=T0)

        outcome = await service.upload_modified()

        assert outcome.ok
        assert outcome.inserted == ["a.md"]
        (row,) = rows(database)
        assert row.path == "a.md"
        assert row.file_metadata["path"] == "a.md"
        assert row.file_metadata["name"] == "a"
        assert row.dataview_metadata == {"status": "draft"}
        assert "file" not in row.dataview_metadata
        assert "position" not in row.dataview_metadata
        assert row.file_content == NOTE_A

    @pytest.mark.asyncio
    async def test_watermark_boundary_is_inclusive(self, service, database, note):
        seed_prior_record(database, T1)
        note("at.md", "at", mtime=T1)
        note("before.md", "before", mtime=T1 - timedelta(seconds=1))

        outcome = await service.upload_modified()

        assert outcome.selected == ["at.md"]
        assert [r.path for r in rows(database)] == ["at.md", "prior.md"]

    @pytest.mark.asyncio
    async def test_persisted_timestamp_not_before_watermark(self, service, database, note):
        note("a.md", "a", mtime=T0)
        await service.upload_modified()
        first = database.watermark()

        note("a.md", "a2", mtime=datetime.now(timezone.utc))
        await service.upload_modified()

        assert database.watermark() >= first

    @pytest.mark.asyncio
    async def test_unchanged_notes_not_reuploaded(self, service, database, note):
        note("a.md", "a", mtime=T0)
        await service.upload_modified()

        outcome = await service.upload_modified()

        assert outcome.selected == []
        assert database.count() == 1

    @pytest.mark.asyncio
    async def test_failure_halts_batch(self, service, database, note):
        for name in ("a.md", "b.md", "c.md"):
            note(name, name, mtime=T0)

        real_insert = database.insert
        attempted = []

        def flaky_insert(record):
            attempted.append(record.path)
            if record.path == "b.md":
                raise IntegrityError("INSERT", {}, Exception("constraint violated"))
            real_insert(record)

        with patch.object(database, "insert", side_effect=flaky_insert):
            outcome = await service.upload_modified()

        assert attempted == ["a.md", "b.md"]
        assert outcome.inserted == ["a.md"]
        assert outcome.failed_path == "b.md"
        assert isinstance(outcome.error, IntegrityError)
        assert [r.path for r in rows(database)] == ["a.md"]
        assert service.last_outcome is outcome


class TestUploadCurrent:
    @pytest.mark.asyncio
    async def test_uploads_latest_note(self, service, database, note):
        note("old.md", "old", mtime=T0)
        note("new.md", "new", mtime=T0 + timedelta(hours=1))

        outcome = await service.upload_current()

        assert outcome.inserted == ["new.md"]
        assert [r.path for r in rows(database)] == ["new.md"]

    @pytest.mark.asyncio
    async def test_configured_active_file(self, vault_path, database, note):
        note("old.md", "old", mtime=T0)
        note("new.md", "new", mtime=T0 + timedelta(hours=1))
        service = VaultSyncService(VaultSource(vault_path, active_file="old.md"), database)

        outcome = await service.upload_current()

        assert outcome.inserted == ["old.md"]

    @pytest.mark.asyncio
    async def test_current_ignores_watermark(self, service, database, note):
        seed_prior_record(database, T1)
        note("a.md", "a", mtime=T0)
        outcome = await service.upload_current()
        assert outcome.inserted == ["a.md"]

    @pytest.mark.asyncio
    async def test_no_active_file(self, service):
        with pytest.raises(NoActiveFileError):
            await service.upload_current()


class TestSingleFlight:
    @pytest.mark.asyncio
    async def test_concurrent_passes_do_not_interleave(self, service, database, note):
        for name in ("a.md", "b.md"):
            note(name, name, mtime=T0)

        events = []
        real_load = service.source.load

        async def slow_load(path):
            events.append(("start", path))
            await asyncio.sleep(0.01)
            events.append(("end", path))
            return await real_load(path)

        with patch.object(service.source, "load", side_effect=slow_load):
            await asyncio.gather(service.upload_modified(), service.upload_current())

        # each load finishes before the next begins
        for i in range(0, len(events), 2):
            assert events[i][0] == "start"
            assert events[i + 1] == ("end", events[i][1])
        assert database.count() == 3


class TestCommands:
    @pytest.mark.asyncio
    async def test_upload_modified_notifies_count(self, service, notifier, note):
        note("a.md", "a")
        note("b.md", "b")

        outcome = await commands.upload_modified_files(service, notifier)

        assert outcome.inserted_count == 2
        assert notifier.messages == ["Connected to PostgreSQL", "2 pages inserted"]

    @pytest.mark.asyncio
    async def test_upload_current_notifies_inserted(self, service, notifier, note):
        note("a.md", "a")
        await commands.upload_current_file(service, notifier)
        assert notifier.messages[-1] == "Inserted page"

    @pytest.mark.asyncio
    async def test_connected_notice_only_once(self, service, notifier, note):
        note("a.md", "a")
        await commands.upload_current_file(service, notifier)
        await commands.upload_current_file(service, notifier)
        assert notifier.messages.count("Connected to PostgreSQL") == 1

    @pytest.mark.asyncio
    async def test_insert_failure_notifies_and_raises(self, service, database, notifier, note):
        for name in ("a.md", "b.md", "c.md"):
            note(name, name)
        error = IntegrityError("INSERT", {}, Exception("constraint violated"))
        real_insert = database.insert

        def flaky_insert(record):
            if record.path == "b.md":
                raise error
            real_insert(record)

        with patch.object(database, "insert", side_effect=flaky_insert):
            with pytest.raises(UploadError) as excinfo:
                await commands.upload_modified_files(service, notifier)

        assert excinfo.value.path == "b.md"
        assert excinfo.value.__cause__ is error
        assert excinfo.value.outcome.inserted == ["a.md"]
        assert notifier.messages[-1].startswith("PostgreSQL error: ")
        assert database.count() == 1

    @pytest.mark.asyncio
    async def test_missing_connection_string(self, source, notifier):
        service = VaultSyncService(source, VaultDatabase(""))
        with pytest.raises(ConfigurationError):
            await commands.upload_modified_files(service, notifier)
        assert notifier.messages == ["PostgreSQL: there is no connection string defined"]

    @pytest.mark.asyncio
    async def test_connection_error(self, source, notifier, tmp_path):
        service = VaultSyncService(
            source, VaultDatabase(f"sqlite:///{tmp_path}/nope/archive.db")
        )
        with pytest.raises(DatabaseConnectionError):
            await commands.upload_current_file(service, notifier)
        assert notifier.messages[0].startswith("PostgreSQL connection error: ")

    @pytest.mark.asyncio
    async def test_no_active_file_notifies(self, service, notifier):
        with pytest.raises(NoActiveFileError):
            await commands.upload_current_file(service, notifier)
        assert notifier.messages[-1] == "PostgreSQL: No active file to upload"

    @pytest.mark.asyncio
    async def test_watermark_query_failure_notifies_and_raises(self, service, database, notifier, note):
        note("a.md", "a")
        error = OperationalError("SELECT max(timestamp)", {}, Exception("server closed the connection"))

        with patch.object(database, "watermark", side_effect=error):
            with pytest.raises(SyncError) as excinfo:
                await commands.upload_modified_files(service, notifier)

        assert excinfo.value.__cause__ is error
        assert notifier.messages[0] == "Connected to PostgreSQL"
        assert notifier.messages[-1].startswith("PostgreSQL error: ")
        assert "server closed the connection" in notifier.messages[-1]
        assert database.count() == 0

    @pytest.mark.asyncio
    async def test_vault_read_failure_notifies_and_raises(self, service, notifier):
        error = PermissionError("Permission denied: vault")
        with patch.object(service.source, "pages", side_effect=error):
            with pytest.raises(SyncError) as excinfo:
                await commands.upload_modified_files(service, notifier)
        assert excinfo.value.__cause__ is error
        assert notifier.messages[-1] == "PostgreSQL error: Permission denied: vault"

    @pytest.mark.asyncio
    async def test_deleted_active_file_notifies(self, vault_path, database, notifier, note):
        note("a.md", "a")
        service = VaultSyncService(VaultSource(vault_path, active_file="gone.md"), database)

        with pytest.raises(NoActiveFileError):
            await commands.upload_current_file(service, notifier)

        assert notifier.messages[-1] == "PostgreSQL: Active file gone.md not found"
        assert database.count() == 0

    @pytest.mark.asyncio
    async def test_undecodable_note_names_the_path(self, vault_path, service, database, notifier, note):
        note("good.md", "fine")
        (vault_path / "bad.md").write_bytes(b"\xff\xfe broken")

        with pytest.raises(UploadError) as excinfo:
            await commands.upload_modified_files(service, notifier)

        assert excinfo.value.path == "bad.md"
        assert isinstance(excinfo.value.__cause__, UnicodeDecodeError)
        assert notifier.messages[-1].startswith("PostgreSQL error: bad.md: ")
