import os
from pathlib import Path
from typing import Iterator

import psycopg
import pytest
from alembic import command
from alembic.config import Config
from fastapi.testclient import TestClient
from testcontainers.postgres import PostgresContainer

from familycal.config import Settings

# Ensure allowed environment for env_loader
os.environ.setdefault("ENV", "dev")

E2E_ADMIN_ID = "google-e2e-admin"


@pytest.fixture(scope="session")
def db_url() -> Iterator[str]:
    """Start a Postgres container, run migrations, and return the DB URL."""
    with PostgresContainer("postgres:16") as pg:
        raw_url = pg.get_connection_url()
        # Normalize to psycopg3-compatible URL if needed
        url = raw_url.replace("postgresql+psycopg2://", "postgresql://")
        os.environ["DATABASE_URL"] = url

        # Run Alembic migrations against this database
        root_dir = Path(__file__).resolve().parents[2]
        alembic_cfg = Config(str(root_dir / "alembic.ini"))
        command.upgrade(alembic_cfg, "head")

        yield url


@pytest.fixture(autouse=True)
def clean_tables(db_url: str) -> Iterator[None]:
    """Start every e2e test from empty tables."""
    with psycopg.connect(db_url, autocommit=True) as conn:
        conn.execute(
            "TRUNCATE events, calendars, admin_settings, sync_log RESTART IDENTITY CASCADE"
        )
    yield


@pytest.fixture
def e2e_settings(db_url: str) -> Settings:
    return Settings(
        database_url=db_url,
        google_client_id="e2e-client",
        google_client_secret="e2e-secret",
        google_redirect_uri="http://localhost:3000/auth/google/callback",
        encryption_key="e2e-encryption-key-with-32-plus-chars",
        session_secret="e2e-session-secret-with-32-plus-chars",
        credential_poll_interval_seconds=0.1,
    )


@pytest.fixture
def client(e2e_settings: Settings) -> Iterator[TestClient]:
    """Unauthenticated client for an app running against the test database."""
    from familycal.app.app import create_app

    with TestClient(create_app(settings=e2e_settings)) as client:
        yield client


@pytest.fixture
def auth_client(client: TestClient, db_url: str, e2e_settings: Settings) -> TestClient:
    """The same client, signed in as the stored admin."""
    from familycal.app.session import SESSION_COOKIE_NAME, create_session_token

    with psycopg.connect(db_url, autocommit=True) as conn:
        conn.execute(
            "INSERT INTO admin_settings (key, value) VALUES (%s, %s), (%s, %s)",
            ("admin_user_id", E2E_ADMIN_ID, "admin_user_email", "e2e@example.com"),
        )
    client.cookies.set(
        SESSION_COOKIE_NAME,
        create_session_token(E2E_ADMIN_ID, e2e_settings.session_secret),
    )
    return client
