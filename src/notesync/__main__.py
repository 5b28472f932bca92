"""
Main entrypoint: operator commands for vault → PostgreSQL sync.

Usage:
    python -m notesync configure --connection-url postgres://u:p@host/db --vault ~/Notes
    python -m notesync upload-current [--path Daily/2026-10-18.md]
    python -m notesync upload-modified
    python -m notesync upload Projects/a.md Projects/b.md
    python -m notesync watch        # periodic upload-modified (sync_interval_minutes)
    python -m notesync serve        # HTTP API on :8000
"""
import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger(__name__)


def _settings_path():
    override = os.environ.get("NOTESYNC_SETTINGS_FILE")
    return Path(override) if override else None


def _run_configure(args) -> int:
    from notesync.config import SETTINGS_FILE_DEFAULT, load_settings, save_settings

    path = _settings_path()
    settings = load_settings(path)
    if args.connection_url is not None:
        settings.connection_url = args.connection_url
    if args.vault is not None:
        settings.vault_path = Path(args.vault).expanduser()
    if args.interval is not None:
        settings.sync_interval_minutes = args.interval
    save_settings(settings, path)
    logger.info("Settings saved to %s", path or SETTINGS_FILE_DEFAULT)
    return 0


async def _run_command(args) -> int:
    from notesync import commands
    from notesync.config import get_settings
    from notesync.db.engine import VaultDatabase
    from notesync.exceptions import NotesyncError
    from notesync.notify.notifier import build_notifier
    from notesync.sync.service import VaultSyncService
    from notesync.vault.source import VaultSource

    settings = get_settings()
    notifier = build_notifier(settings)
    source = VaultSource(
        settings.vault_path,
        active_file=getattr(args, "path", None) or settings.active_file,
    )

    with VaultDatabase(
        settings.connection_url, connect_timeout=settings.connect_timeout_seconds
    ) as database:
        service = VaultSyncService(source=source, database=database)
        try:
            if args.command == "upload-current":
                await commands.upload_current_file(service, notifier)
            elif args.command == "upload-modified":
                await commands.upload_modified_files(service, notifier)
            elif args.command == "upload":
                await commands.upload_files(service, notifier, args.paths)
            elif args.command == "watch":
                await _watch(service, notifier)
        except NotesyncError as exc:
            logger.error("%s", exc)
            return 1
    return 0


async def _watch(service, notifier) -> None:
    from notesync.config import get_settings
    from notesync.scheduler.jobs import build_scheduler

    settings = get_settings()
    if settings.sync_interval_minutes <= 0:
        logger.error("sync_interval_minutes is 0; set it with `configure --interval N`.")
        return

    scheduler = build_scheduler(service, notifier)
    scheduler.start()
    logger.info(
        "Watching %s (upload every %d min). Press Ctrl+C to stop.",
        settings.vault_path,
        settings.sync_interval_minutes,
    )
    try:
        await asyncio.Event().wait()
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Shutting down...")
    finally:
        scheduler.shutdown()


def _run_serve(args) -> int:
    import uvicorn

    uvicorn.run("notesync.api.main:app", host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="notesync", description="Archive vault notes into PostgreSQL"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    configure = sub.add_parser("configure", help="Persist settings")
    configure.add_argument("--connection-url", default=None)
    configure.add_argument("--vault", default=None)
    configure.add_argument("--interval", type=int, default=None,
                           help="Minutes between periodic syncs (0 disables)")

    current = sub.add_parser("upload-current", help="Upload the current note")
    current.add_argument("--path", default=None,
                         help="Vault-relative note path (default: most recently modified)")

    sub.add_parser("upload-modified", help="Upload notes modified since the last sync")

    upload = sub.add_parser("upload", help="Upload specific notes")
    upload.add_argument("paths", nargs="+")

    sub.add_parser("watch", help="Run upload-modified periodically")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "configure":
        return _run_configure(args)
    if args.command == "serve":
        return _run_serve(args)
    return asyncio.run(_run_command(args))


if __name__ == "__main__":
    sys.exit(main())
