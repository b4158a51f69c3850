import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from familycal.db import CalendarRepository
from familycal.errors import NotFoundError, ValidationError
from familycal.models import AdminUser, Calendar, CalendarCreate
from familycal.app.dependencies import get_calendar_repository
from familycal.app.errors import success_response
from familycal.app.session import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/calendars", tags=["calendars"])


@router.get("")
async def read_all_calendars(
    calendars: CalendarRepository = Depends(get_calendar_repository),
) -> JSONResponse:
    return success_response(await calendars.get_all_calendars())


@router.get("/selected")
async def read_selected_calendars(
    calendars: CalendarRepository = Depends(get_calendar_repository),
) -> JSONResponse:
    selected = await calendars.get_selected_calendars()
    return success_response(selected, f"Retrieved {len(selected)} selected calendars")


@router.post("")
async def create_calendar(
    body: CalendarCreate,
    calendars: CalendarRepository = Depends(get_calendar_repository),
    _admin: AdminUser = Depends(require_admin),
) -> JSONResponse:
    """Create a calendar by hand, outside of a Google sync."""
    if await calendars.get_calendar_by_id(body.id) is not None:
        raise ValidationError(f"Calendar {body.id} already exists")
    created = await calendars.create_calendar(Calendar(**body.model_dump()))
    logger.info(f"Created calendar: calendar_id={created.id}")
    return success_response(
        {"id": created.id},
        f'Calendar "{created.name}" created successfully',
        status_code=status.HTTP_201_CREATED,
    )


@router.put("/{calendar_id}/toggle")
async def toggle_calendar(
    calendar_id: str,
    calendars: CalendarRepository = Depends(get_calendar_repository),
    _admin: AdminUser = Depends(require_admin),
) -> JSONResponse:
    """Flip whether a calendar's events are synced and shown."""
    calendar = await calendars.toggle_calendar_selection(calendar_id)
    return success_response(calendar, "Calendar selection toggled successfully")


@router.delete("/{calendar_id}")
async def delete_calendar(
    calendar_id: str,
    calendars: CalendarRepository = Depends(get_calendar_repository),
    _admin: AdminUser = Depends(require_admin),
) -> JSONResponse:
    """Delete a calendar together with its events."""
    if not await calendars.delete_calendar(calendar_id):
        raise NotFoundError(f"Calendar {calendar_id} not found")
    return success_response(message="Calendar deleted successfully")
