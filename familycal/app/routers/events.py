import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from familycal.db import EventRepository
from familycal.errors import NotFoundError
from familycal.models import AdminUser, CalendarEvent, EventCreate
from familycal.app.dependencies import get_event_repository
from familycal.app.errors import success_response
from familycal.app.session import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/events", tags=["events"])

EPOCH_ISO = datetime(1970, 1, 1, tzinfo=timezone.utc).isoformat()


@router.get("")
async def read_events(
    calendar_id: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    limit: int | None = Query(default=None, ge=1),
    events: EventRepository = Depends(get_event_repository),
) -> JSONResponse:
    """Get events of selected calendars.

    Filters by calendar if `calendar_id` is given, otherwise by date range if
    either bound is given, otherwise returns today's events.
    """
    if calendar_id:
        result = await events.get_events_by_calendar_id(calendar_id)
    elif start_date or end_date:
        result = await events.get_events_by_date_range(
            start_date or EPOCH_ISO,
            end_date or datetime.now(timezone.utc).isoformat(),
        )
    else:
        result = await events.get_todays_events()

    if limit is not None:
        result = result[:limit]
    return success_response(result, f"Retrieved {len(result)} events")


@router.get("/today")
async def read_todays_events(
    events: EventRepository = Depends(get_event_repository),
) -> JSONResponse:
    result = await events.get_todays_events()
    return success_response(result, f"Retrieved {len(result)} events for today")


@router.post("")
async def create_event(
    body: EventCreate,
    events: EventRepository = Depends(get_event_repository),
    _admin: AdminUser = Depends(require_admin),
) -> JSONResponse:
    """Create an event by hand in an existing calendar."""
    created = await events.create_event(CalendarEvent(**body.model_dump()))
    return success_response(
        {"id": created.id},
        f'Event "{created.title}" created successfully',
        status_code=status.HTTP_201_CREATED,
    )


@router.delete("/{event_id}")
async def delete_event(
    event_id: str,
    events: EventRepository = Depends(get_event_repository),
    _admin: AdminUser = Depends(require_admin),
) -> JSONResponse:
    if not await events.delete_event(event_id):
        raise NotFoundError("Event not found")
    return success_response(message="Event deleted successfully")
