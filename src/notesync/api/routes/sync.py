"""Sync trigger and status routes."""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from notesync import commands
from notesync.exceptions import (
    ConfigurationError,
    DatabaseConnectionError,
    NoActiveFileError,
    SyncError,
)
from notesync.models.record import SyncOutcome

router = APIRouter()


class SyncResultResponse(BaseModel):
    inserted: int
    paths: List[str]


class SyncStatusResponse(BaseModel):
    status: str
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    selected: Optional[int] = None
    inserted: Optional[int] = None
    failed_path: Optional[str] = None
    error_message: Optional[str] = None


def get_service(request: Request):
    return request.app.state.service


def get_notifier(request: Request):
    return request.app.state.notifier


async def _run(command, service, notifier) -> SyncResultResponse:
    try:
        outcome = await command(service, notifier)
    except (ConfigurationError, NoActiveFileError) as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except (DatabaseConnectionError, SyncError) as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return SyncResultResponse(inserted=outcome.inserted_count, paths=outcome.inserted)


@router.post("/current", response_model=SyncResultResponse)
async def upload_current(service=Depends(get_service), notifier=Depends(get_notifier)):
    """Upload the active note."""
    return await _run(commands.upload_current_file, service, notifier)


@router.post("/modified", response_model=SyncResultResponse)
async def upload_modified(service=Depends(get_service), notifier=Depends(get_notifier)):
    """Upload every note modified since the last sync."""
    return await _run(commands.upload_modified_files, service, notifier)


@router.get("/status", response_model=SyncStatusResponse)
def sync_status(service=Depends(get_service)):
    """Return the result of the most recent sync pass."""
    outcome: Optional[SyncOutcome] = service.last_outcome
    if outcome is None:
        return SyncStatusResponse(status="running" if service.busy else "never_run")
    return SyncStatusResponse(
        status=outcome.status,
        started_at=outcome.started_at,
        finished_at=outcome.finished_at,
        selected=len(outcome.selected),
        inserted=outcome.inserted_count,
        failed_path=outcome.failed_path,
        error_message=str(outcome.error) if outcome.error else None,
    )
