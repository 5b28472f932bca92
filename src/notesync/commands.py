"""
Operator commands: run a sync pass and report the result.

Every failure is both announced through the notifier and raised, so callers
can apply their own recovery (the CLI exits non-zero, the API maps it to a
status code, the scheduler logs and waits for the next run).
"""
import logging

from sqlalchemy.exc import SQLAlchemyError

from notesync.exceptions import (
    ConfigurationError,
    DatabaseConnectionError,
    NoActiveFileError,
    SyncError,
    UploadError,
)
from notesync.models.record import SyncOutcome

logger = logging.getLogger(__name__)


async def _ensure_connected(service, notifier) -> None:
    if service.database.connected:
        return
    try:
        service.database.connect()
    except ConfigurationError:
        await notifier.notify("PostgreSQL: there is no connection string defined")
        raise
    except DatabaseConnectionError as exc:
        await notifier.notify(f"PostgreSQL connection error: {exc}")
        raise
    await notifier.notify("Connected to PostgreSQL")


async def _raise_on_failure(outcome: SyncOutcome, notifier) -> None:
    if outcome.ok:
        return
    await notifier.notify(f"PostgreSQL error: {outcome.failed_path}: {outcome.error}")
    raise UploadError(
        f"Upload of {outcome.failed_path} failed: {outcome.error}",
        path=outcome.failed_path,
        outcome=outcome,
    ) from outcome.error


async def _run_pass(pass_coro, notifier) -> SyncOutcome:
    """Await a service pass; query and vault-read failures are notified and raised."""
    try:
        outcome = await pass_coro
    except (SQLAlchemyError, OSError, UnicodeError) as exc:
        await notifier.notify(f"PostgreSQL error: {exc}")
        raise SyncError(f"Sync failed: {exc}") from exc
    await _raise_on_failure(outcome, notifier)
    return outcome


async def upload_current_file(service, notifier) -> SyncOutcome:
    """Upload the active note. Notifies "Inserted page" on success."""
    await _ensure_connected(service, notifier)
    try:
        outcome = await _run_pass(service.upload_current(), notifier)
    except NoActiveFileError as exc:
        await notifier.notify(f"PostgreSQL: {exc}")
        raise
    await notifier.notify("Inserted page")
    return outcome


async def upload_modified_files(service, notifier) -> SyncOutcome:
    """Upload every note changed since the watermark. Notifies the count."""
    await _ensure_connected(service, notifier)
    outcome = await _run_pass(service.upload_modified(), notifier)
    await notifier.notify(f"{outcome.inserted_count} pages inserted")
    return outcome


async def upload_files(service, notifier, paths) -> SyncOutcome:
    """Upload an explicit list of notes."""
    await _ensure_connected(service, notifier)
    outcome = await _run_pass(service.upload_paths(paths), notifier)
    await notifier.notify(f"{outcome.inserted_count} pages inserted")
    return outcome
