"""Coordinate Google Calendar sync into the local store.

Two operations make up a sync: the calendar list (which calendars exist and
what they are called) and the events of the calendars the admin selected.
The `run_*` methods are the entry points used by the API; they serialize
syncs within the process and record each run in the sync log.
"""

import asyncio
import logging
from datetime import datetime, timezone

from familycal.db import (
    CalendarRepository,
    CredentialStore,
    EventRepository,
    LAST_SYNC_TIME_KEY,
    SyncLogRepository,
)
from familycal.integrations.google.calendar_client import GoogleCalendarClient
from familycal.integrations.google.credential_monitor import CredentialMonitor
from familycal.models import Calendar
from familycal.models.sync import (
    NO_CALENDARS_SELECTED,
    CalendarListSyncResult,
    EventSyncResult,
    FullSyncResult,
    SyncStatus,
)

logger = logging.getLogger(__name__)


class SyncOrchestrator:
    def __init__(
        self,
        client: GoogleCalendarClient,
        monitor: CredentialMonitor,
        calendars: CalendarRepository,
        events: EventRepository,
        sync_logs: SyncLogRepository,
        credential_store: CredentialStore,
        credential_wait_timeout: float | None = None,
    ):
        self.client = client
        self.monitor = monitor
        self.calendars = calendars
        self.events = events
        self.sync_logs = sync_logs
        self.credential_store = credential_store
        self.credential_wait_timeout = credential_wait_timeout
        self._lock = asyncio.Lock()

    @property
    def is_syncing(self) -> bool:
        return self._lock.locked()

    async def _require_credentials(self) -> None:
        await self.monitor.wait_ready(self.credential_wait_timeout)

    async def sync_calendar_list(self) -> CalendarListSyncResult:
        """Mirror the remote calendar list into the local store.

        Name, description and color are refreshed; the local `selected` flag of
        an existing calendar is left alone and new calendars start unselected.
        A calendar counts as imported if its id was not stored before this
        batch began, and as updated otherwise.
        """
        await self._require_credentials()

        remote_calendars = await self.client.fetch_calendar_list()
        if not remote_calendars:
            logger.info("Google returned no calendars")
            return CalendarListSyncResult(imported=0, updated=0)

        existing_ids = await self.calendars.get_existing_calendar_ids()
        await self.calendars.upsert_synced_calendars(remote_calendars)

        imported = sum(1 for c in remote_calendars if c.id not in existing_ids)
        updated = len(remote_calendars) - imported
        logger.info(f"Synced calendar list: imported={imported}, updated={updated}")
        return CalendarListSyncResult(imported=imported, updated=updated)

    async def _sync_calendar_events(self, calendar: Calendar) -> tuple[int, str | None]:
        """Sync one calendar's events; failures are returned, not raised."""
        try:
            events = await self.client.fetch_calendar_events(calendar.id)
            count = await self.events.upsert_events(events)
        except Exception as e:
            logger.warning(
                f"Failed to sync calendar events: calendar_id={calendar.id}, "
                f"exception_type={type(e).__name__}, error={e}"
            )
            return 0, f'Failed to sync calendar "{calendar.name}": {e}'
        logger.debug(f"Synced calendar events: calendar_id={calendar.id}, count={count}")
        return count, None

    async def sync_selected_calendar_events(self) -> EventSyncResult:
        """Sync the events of every selected calendar concurrently.

        One calendar failing does not stop the others; its failure is reported
        in `errors`. With nothing selected, no remote call is made.
        """
        await self._require_credentials()

        selected = await self.calendars.get_selected_calendars()
        if not selected:
            logger.info("No calendars selected, skipping event sync")
            return EventSyncResult(calendars=0, events=0, errors=[NO_CALENDARS_SELECTED])

        outcomes = await asyncio.gather(
            *(self._sync_calendar_events(calendar) for calendar in selected)
        )
        total = sum(count for count, _ in outcomes)
        errors = [error for _, error in outcomes if error is not None]

        logger.info(
            f"Synced selected calendar events: calendars={len(selected)}, "
            f"events={total}, errors={len(errors)}"
        )
        return EventSyncResult(calendars=len(selected), events=total, errors=errors)

    async def run_calendar_sync(self) -> CalendarListSyncResult:
        async with self._lock:
            log_id = await self._start_log("Starting calendar list sync from Google Calendar")
            try:
                result = await self.sync_calendar_list()
            except Exception as e:
                await self._finish_log(log_id, "failed", str(e))
                raise
            await self._finish_log(
                log_id,
                "completed",
                f"Calendar list sync completed: {result.imported} new, {result.updated} updated",
            )
            return result

    async def run_event_sync(self) -> EventSyncResult:
        async with self._lock:
            log_id = await self._start_log("Starting event sync from Google Calendar")
            try:
                result = await self.sync_selected_calendar_events()
            except Exception as e:
                await self._finish_log(log_id, "failed", str(e))
                raise
            await self._finish_log(
                log_id,
                "completed",
                f"Successfully synced {result.events} events from {result.calendars} calendars",
                result.events,
            )
            if not result.nothing_selected:
                await self._record_sync_time()
            return result

    async def run_full_sync(self) -> FullSyncResult:
        """Sync the calendar list, then events, under a single sync log entry."""
        async with self._lock:
            log_id = await self._start_log("Starting full sync from Google Calendar")
            try:
                calendar_result = await self.sync_calendar_list()
                event_result = await self.sync_selected_calendar_events()
            except Exception as e:
                await self._finish_log(log_id, "failed", str(e))
                raise

            total_calendars = calendar_result.imported + calendar_result.updated
            await self._finish_log(
                log_id,
                "completed",
                f"Full sync completed: {total_calendars} calendars, {event_result.events} events",
                event_result.events,
            )
            await self._record_sync_time()
            return FullSyncResult(calendars=calendar_result, events=event_result)

    async def _start_log(self, message: str) -> int | None:
        try:
            entry = await self.sync_logs.create_log("started", message)
        except Exception as e:
            logger.exception(
                f"Failed to write sync log: exception_type={type(e).__name__}, error={e}"
            )
            return None
        return entry.id

    async def _finish_log(
        self,
        log_id: int | None,
        status: SyncStatus,
        message: str,
        events_synced: int = 0,
    ) -> None:
        if log_id is None:
            return
        try:
            await self.sync_logs.update_log(log_id, status, message, events_synced)
        except Exception as e:
            logger.exception(
                f"Failed to update sync log: sync_log_id={log_id}, "
                f"exception_type={type(e).__name__}, error={e}"
            )

    async def _record_sync_time(self) -> None:
        now = datetime.now(timezone.utc).isoformat()
        try:
            await self.credential_store.set(LAST_SYNC_TIME_KEY, now)
        except Exception as e:
            logger.exception(
                f"Failed to record last sync time: "
                f"exception_type={type(e).__name__}, error={e}"
            )
