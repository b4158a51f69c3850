"""Google Calendar API client for reading calendars and events."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable
from urllib.parse import quote

import httpx

from familycal.errors import NoCredentialsError, RemoteApiError
from familycal.models.calendar import Calendar, CalendarEvent, DEFAULT_CALENDAR_COLOR
from familycal.models.sync import ConnectionTestResult
from .auth import GoogleToken, fetch_user_info, refresh_access_token, google_error_detail

logger = logging.getLogger(__name__)

CALENDAR_API_BASE_URL = "https://www.googleapis.com/calendar/v3"
DEFAULT_SYNC_WINDOW = timedelta(days=30)
MAX_EVENT_RESULTS = 250

TokenCallback = Callable[[GoogleToken], None]


class GoogleCalendarClient:
    """Client for interacting with the Google Calendar API.

    The client holds the live OAuth state. Whenever it obtains new tokens it
    hands them to `on_tokens` so the caller can persist them; the callback is
    invoked synchronously and must not block.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        on_tokens: TokenCallback | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.on_tokens = on_tokens
        self.base_url = CALENDAR_API_BASE_URL

        self.access_token: str | None = None
        self.refresh_token: str | None = None
        self.expires_at: datetime | None = None

        self._http = http_client or httpx.AsyncClient(timeout=30)
        self._refresh_lock = asyncio.Lock()

    @property
    def has_credentials(self) -> bool:
        return bool(self.access_token or self.refresh_token)

    def set_credentials(
        self,
        access_token: str | None,
        refresh_token: str | None = None,
        expires_at: datetime | None = None,
    ) -> None:
        """Replace the tokens used for API calls."""
        self.access_token = access_token or None
        if refresh_token:
            self.refresh_token = refresh_token
        self.expires_at = expires_at
        logger.info(
            f"Google credentials set: has_access_token={self.access_token is not None}, "
            f"has_refresh_token={self.refresh_token is not None}"
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    def needs_token_refresh(self) -> bool:
        """Check if the access token needs to be refreshed.

        Returns:
            True if there is no access token, or it expires within 5 minutes.
            False if expiration is unknown.
        """
        if self.access_token is None:
            return True
        if self.expires_at is None:
            return False

        expires_at_aware = self.expires_at
        if expires_at_aware.tzinfo is None:
            expires_at_aware = expires_at_aware.replace(tzinfo=timezone.utc)

        now = datetime.now(timezone.utc)
        return expires_at_aware <= now + timedelta(minutes=5)

    async def _refresh_access_token(self, stale_token: str | None) -> None:
        """Refresh the access token and report the new tokens.

        Concurrent callers that hit an expired token share a single refresh:
        if another caller already replaced `stale_token`, nothing is done.

        Raises:
            RemoteApiError: If there is no refresh token or the refresh fails.
        """
        async with self._refresh_lock:
            if self.access_token is not None and self.access_token != stale_token:
                return
            if not self.refresh_token:
                raise RemoteApiError(
                    "Google access token expired and no refresh token is available",
                    status_code=401,
                )

            token = await refresh_access_token(
                self._http, self.client_id, self.client_secret, self.refresh_token
            )
            self.access_token = token.access_token
            if token.refresh_token:
                self.refresh_token = token.refresh_token
                logger.info("Google provided a new refresh token")
            self.expires_at = token.expires_at_datetime()
            logger.info("Refreshed Google access token")

            self._notify_tokens(token)

    def _notify_tokens(self, token: GoogleToken) -> None:
        if self.on_tokens is None:
            return
        try:
            self.on_tokens(token)
        except Exception as e:
            logger.exception(
                f"Token rotation callback failed: "
                f"exception_type={type(e).__name__}, error={e}"
            )

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}

    async def _make_request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Make an API request, refreshing the access token when needed.

        A 401 response triggers one token refresh and one reissue of the
        request. Other failures are not retried.

        Raises:
            NoCredentialsError: If no tokens have been set.
            RemoteApiError: If the request fails.
        """
        if not self.has_credentials:
            raise NoCredentialsError("No Google credentials available")

        try:
            if self.needs_token_refresh():
                logger.info("Access token missing or about to expire, refreshing proactively")
                await self._refresh_access_token(self.access_token)

            token_used = self.access_token
            response = await self._http.request(
                method, url, headers=self._auth_headers(), **kwargs
            )

            if response.status_code == 401 and self.refresh_token:
                logger.warning(
                    f"Received 401 Unauthorized for {method} request to {url}, "
                    f"attempting token refresh"
                )
                await self._refresh_access_token(token_used)
                response = await self._http.request(
                    method, url, headers=self._auth_headers(), **kwargs
                )
        except httpx.HTTPError as e:
            logger.error(
                f"HTTP error for {method} request to {url}: "
                f"exception_type={type(e).__name__}, error={e}"
            )
            raise RemoteApiError(f"{type(e).__name__}: {e}") from e

        if response.status_code >= 400:
            detail = google_error_detail(response)
            logger.error(
                f"Google API request failed: method={method}, url={url}, "
                f"status_code={response.status_code}, error={detail}"
            )
            raise RemoteApiError(detail, status_code=response.status_code)

        return response

    async def test_connection(self) -> ConnectionTestResult:
        """Check that the stored credentials can reach the Calendar API.

        Never raises: failures are reported in the result.
        """
        if not self.has_credentials:
            return ConnectionTestResult(
                success=False,
                message="No Google credentials available. Please authenticate first.",
            )

        try:
            await self._make_request(
                "GET",
                f"{self.base_url}/users/me/calendarList",
                params={"maxResults": 1},
            )
            if self.access_token is None:
                raise RemoteApiError("No access token available")
            user_info = await fetch_user_info(self._http, self.access_token)
        except (RemoteApiError, NoCredentialsError) as e:
            logger.error(f"Google Calendar API test failed: error={e}")
            return ConnectionTestResult(success=False, message=f"Connection failed: {e}")

        return ConnectionTestResult(
            success=True,
            message="Google Calendar API connection successful",
            user_email=user_info.email or None,
        )

    async def fetch_calendar_list(self) -> list[Calendar]:
        """Fetch every calendar in the user's calendar list.

        `selected` is always False here; selection is decided locally.
        """
        url = f"{self.base_url}/users/me/calendarList"
        items: list[dict] = []
        page_token: str | None = None
        while True:
            params = {"pageToken": page_token} if page_token else {}
            try:
                response = await self._make_request("GET", url, params=params)
            except RemoteApiError as e:
                raise RemoteApiError(
                    f"Failed to fetch calendar list: {e}", status_code=e.status_code
                ) from e
            data = response.json()
            items.extend(data.get("items", []))
            page_token = data.get("nextPageToken")
            if not page_token:
                break

        calendars = [
            Calendar(
                id=item["id"],
                name=item.get("summary") or "Unnamed Calendar",
                description=item.get("description") or None,
                color=item.get("backgroundColor") or DEFAULT_CALENDAR_COLOR,
                selected=False,
            )
            for item in items
        ]
        logger.info(f"Fetched Google calendar list: count={len(calendars)}")
        return calendars

    async def fetch_calendar_events(
        self,
        calendar_id: str,
        time_min: datetime | None = None,
        time_max: datetime | None = None,
    ) -> list[CalendarEvent]:
        """Fetch events of one calendar, recurring events expanded into instances.

        Args:
            calendar_id: Google calendar id.
            time_min: Start of the window; defaults to now.
            time_max: End of the window; defaults to 30 days after now.
        """
        now = datetime.now(timezone.utc)
        time_min = time_min or now
        time_max = time_max or now + DEFAULT_SYNC_WINDOW

        url = f"{self.base_url}/calendars/{quote(calendar_id, safe='')}/events"
        params = {
            "timeMin": time_min.isoformat(),
            "timeMax": time_max.isoformat(),
            "singleEvents": "true",
            "orderBy": "startTime",
            "maxResults": MAX_EVENT_RESULTS,
        }
        try:
            response = await self._make_request("GET", url, params=params)
        except RemoteApiError as e:
            raise RemoteApiError(
                f"Failed to fetch events: {e}", status_code=e.status_code
            ) from e

        items = response.json().get("items", [])
        events = [_item_to_event(calendar_id, item, now) for item in items]
        logger.info(
            f"Fetched Google events: calendar_id={calendar_id}, count={len(events)}"
        )
        return events


def _item_to_event(calendar_id: str, item: dict, now: datetime) -> CalendarEvent:
    """Map a Google event resource to a local event.

    An event without `start.dateTime` only has a date and is all-day.
    """
    start = item.get("start") or {}
    end = item.get("end") or {}
    return CalendarEvent(
        id=item["id"],
        calendar_id=calendar_id,
        title=item.get("summary") or "Untitled Event",
        description=item.get("description") or None,
        start_time=start.get("dateTime") or start.get("date") or now.isoformat(),
        end_time=end.get("dateTime") or end.get("date") or now.isoformat(),
        all_day=not start.get("dateTime"),
        location=item.get("location") or None,
    )
