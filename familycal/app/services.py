"""Composition root: build the long-lived objects the API works with.

Everything is constructed explicitly from `Settings` and handed to request
handlers through FastAPI dependencies. The credential monitor's background
poll is started by `Services.start()`, which the app lifespan calls.
"""

import asyncio
import logging
from dataclasses import dataclass, field

import httpx

from familycal.config import Settings
from familycal.db import (
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    AdminSettingsRepository,
    CalendarRepository,
    CredentialStore,
    EventRepository,
    SyncLogRepository,
)
from familycal.integrations.google.auth import GoogleToken
from familycal.integrations.google.calendar_client import GoogleCalendarClient
from familycal.integrations.google.credential_monitor import CredentialMonitor
from familycal.sync.orchestrator import SyncOrchestrator
from familycal.utils.encryption import TokenCipher

logger = logging.getLogger(__name__)


class TokenPersister:
    """Token rotation callback that saves new Google tokens in the background.

    The calendar client calls this synchronously; the write is scheduled as a
    task so the API call that triggered the refresh is not held up by it.
    """

    def __init__(self, store: CredentialStore):
        self.store = store
        self.pending: set[asyncio.Task] = set()

    def __call__(self, token: GoogleToken) -> None:
        values = {ACCESS_TOKEN_KEY: token.access_token}
        if token.refresh_token:
            values[REFRESH_TOKEN_KEY] = token.refresh_token
        task = asyncio.create_task(self._save(values))
        self.pending.add(task)
        task.add_done_callback(self.pending.discard)

    async def _save(self, values: dict[str, str]) -> None:
        try:
            await self.store.set_many(values)
        except Exception as e:
            logger.exception(
                f"Failed to persist rotated Google tokens: keys={sorted(values)}, "
                f"exception_type={type(e).__name__}, error={e}"
            )

    async def drain(self) -> None:
        if self.pending:
            await asyncio.gather(*self.pending, return_exceptions=True)


@dataclass
class Services:
    settings: Settings
    http_client: httpx.AsyncClient
    cipher: TokenCipher
    admin_settings: AdminSettingsRepository
    credential_store: CredentialStore
    calendars: CalendarRepository
    events: EventRepository
    sync_logs: SyncLogRepository
    calendar_client: GoogleCalendarClient
    monitor: CredentialMonitor
    orchestrator: SyncOrchestrator
    token_persister: TokenPersister | None = field(default=None)

    def start(self) -> None:
        self.monitor.start()

    async def aclose(self) -> None:
        await self.monitor.stop()
        if self.token_persister is not None:
            await self.token_persister.drain()
        await self.http_client.aclose()


def build_services(settings: Settings) -> Services:
    http_client = httpx.AsyncClient(timeout=30)
    cipher = TokenCipher(settings.encryption_key)

    admin_settings = AdminSettingsRepository(settings.database_url)
    credential_store = CredentialStore(admin_settings, cipher)
    calendars = CalendarRepository(settings.database_url)
    events = EventRepository(settings.database_url)
    sync_logs = SyncLogRepository(settings.database_url)

    token_persister = TokenPersister(credential_store)
    calendar_client = GoogleCalendarClient(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        on_tokens=token_persister,
        http_client=http_client,
    )
    monitor = CredentialMonitor(
        credential_store,
        calendar_client,
        poll_interval=settings.credential_poll_interval_seconds,
    )
    orchestrator = SyncOrchestrator(
        client=calendar_client,
        monitor=monitor,
        calendars=calendars,
        events=events,
        sync_logs=sync_logs,
        credential_store=credential_store,
        credential_wait_timeout=settings.credential_wait_timeout_seconds,
    )

    return Services(
        settings=settings,
        http_client=http_client,
        cipher=cipher,
        admin_settings=admin_settings,
        credential_store=credential_store,
        calendars=calendars,
        events=events,
        sync_logs=sync_logs,
        calendar_client=calendar_client,
        monitor=monitor,
        orchestrator=orchestrator,
        token_persister=token_persister,
    )
