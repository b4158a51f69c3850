import httpx
from fastapi import Depends, Request

from familycal.config import Settings
from familycal.db import (
    AdminSettingsRepository,
    CalendarRepository,
    CredentialStore,
    EventRepository,
    SyncLogRepository,
)
from familycal.integrations.google.calendar_client import GoogleCalendarClient
from familycal.sync.orchestrator import SyncOrchestrator
from .services import Services


def get_services(request: Request) -> Services:
    services = request.app.state.services
    if services is None:
        raise RuntimeError("Application services have not been started")
    return services


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_calendar_repository(services: Services = Depends(get_services)) -> CalendarRepository:
    return services.calendars


def get_event_repository(services: Services = Depends(get_services)) -> EventRepository:
    return services.events


def get_sync_log_repository(services: Services = Depends(get_services)) -> SyncLogRepository:
    return services.sync_logs


def get_admin_settings_repository(
    services: Services = Depends(get_services),
) -> AdminSettingsRepository:
    return services.admin_settings


def get_credential_store(services: Services = Depends(get_services)) -> CredentialStore:
    return services.credential_store


def get_calendar_client(services: Services = Depends(get_services)) -> GoogleCalendarClient:
    return services.calendar_client


def get_orchestrator(services: Services = Depends(get_services)) -> SyncOrchestrator:
    return services.orchestrator


def get_http_client(services: Services = Depends(get_services)) -> httpx.AsyncClient:
    return services.http_client
