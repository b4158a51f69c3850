"""Google Calendar sync routes."""

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from familycal.db import SyncLogRepository
from familycal.integrations.google.calendar_client import GoogleCalendarClient
from familycal.models import AdminUser, ApiResponse
from familycal.sync.orchestrator import SyncOrchestrator
from familycal.app.dependencies import (
    get_calendar_client,
    get_orchestrator,
    get_sync_log_repository,
)
from familycal.app.errors import envelope, success_response
from familycal.app.session import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sync", tags=["sync"])


@router.post("/test-connection")
async def test_connection(
    client: GoogleCalendarClient = Depends(get_calendar_client),
    _admin: AdminUser = Depends(require_admin),
) -> JSONResponse:
    """Check that the stored Google credentials can reach the Calendar API."""
    result = await client.test_connection()
    return success_response(result, result.message)


@router.post("/calendars")
async def sync_calendars(
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
    _admin: AdminUser = Depends(require_admin),
) -> JSONResponse:
    """Import the calendar list from Google, keeping local selections."""
    result = await orchestrator.run_calendar_sync()
    return success_response(
        result,
        f"Successfully synced calendars: {result.imported} new, {result.updated} updated",
    )


@router.post("/events")
async def sync_events(
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
    _admin: AdminUser = Depends(require_admin),
) -> JSONResponse:
    """Sync events of all selected calendars.

    Calendars that fail are listed as warnings; the others are still synced.
    """
    result = await orchestrator.run_event_sync()
    if result.nothing_selected:
        return envelope(ApiResponse(success=False, data=result, message=result.errors[0]))

    message = f"Successfully synced {result.events} events from {result.calendars} calendars"
    if result.errors:
        message += f". Warnings: {', '.join(result.errors)}"
    return success_response(result, message)


@router.post("/full")
async def sync_full(
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
    _admin: AdminUser = Depends(require_admin),
) -> JSONResponse:
    """Sync the calendar list, then events of the selected calendars."""
    result = await orchestrator.run_full_sync()
    total_calendars = result.calendars.imported + result.calendars.updated
    return success_response(
        result,
        f"Full sync completed: {total_calendars} calendars synced, "
        f"{result.events.events} events synced",
    )


@router.get("/logs")
async def get_sync_logs(
    limit: int = Query(default=10, ge=1, le=100),
    sync_logs: SyncLogRepository = Depends(get_sync_log_repository),
    _admin: AdminUser = Depends(require_admin),
) -> JSONResponse:
    """Get the most recent sync log entries, newest first."""
    logs = await sync_logs.get_logs(limit)
    return success_response(logs, f"Retrieved {len(logs)} sync log entries")
