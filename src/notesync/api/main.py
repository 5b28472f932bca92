"""FastAPI application factory."""
from contextlib import asynccontextmanager

from fastapi import FastAPI

from notesync.api.routes import sync as sync_routes


def _build_service(settings):
    from notesync.db.engine import VaultDatabase
    from notesync.sync.service import VaultSyncService
    from notesync.vault.source import VaultSource

    source = VaultSource(settings.vault_path, active_file=settings.active_file)
    database = VaultDatabase(
        settings.connection_url, connect_timeout=settings.connect_timeout_seconds
    )
    return VaultSyncService(source=source, database=database)


def create_app(service=None, notifier=None) -> FastAPI:
    """Build and return the FastAPI app.

    Without an explicit service one is built from settings at startup and its
    database connection is closed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        from notesync.config import get_settings
        from notesync.notify.notifier import build_notifier

        owned = service is None
        settings = get_settings() if owned or notifier is None else None
        app.state.service = service or _build_service(settings)
        app.state.notifier = notifier or build_notifier(settings)
        try:
            yield
        finally:
            if owned:
                app.state.service.database.close()

    app = FastAPI(
        title="notesync",
        description="Vault to PostgreSQL archival sync",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(sync_routes.router, prefix="/sync", tags=["sync"])

    return app


# Module-level app instance for uvicorn
app = create_app()
