"""
APScheduler job for periodic "upload modified files".

Runs the same command the operator triggers by hand, every
``sync_interval_minutes``. The service's single-flight lock keeps it from
interleaving with an operator-triggered pass.
"""
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from notesync.config import get_settings

logger = logging.getLogger(__name__)


def build_scheduler(service, notifier) -> AsyncIOScheduler:
    """
    Create and configure the APScheduler.

    Args:
        service: VaultSyncService to run the pass on.
        notifier: Notifier for results.

    Returns:
        Configured AsyncIOScheduler (not yet started). No job is registered
        when the interval setting is 0.
    """
    settings = get_settings()
    scheduler = AsyncIOScheduler()

    if settings.sync_interval_minutes > 0:
        scheduler.add_job(
            _periodic_sync,
            trigger="interval",
            minutes=settings.sync_interval_minutes,
            id="upload_modified",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            kwargs={"service": service, "notifier": notifier},
        )

    return scheduler


async def _periodic_sync(service, notifier) -> None:
    """Periodic job body. Errors are logged so the scheduler stays alive."""
    from notesync.commands import upload_modified_files

    try:
        outcome = await upload_modified_files(service, notifier)
        logger.info("Periodic sync inserted %d notes", outcome.inserted_count)
    except Exception as exc:
        logger.error("Periodic sync failed: %s", exc)
