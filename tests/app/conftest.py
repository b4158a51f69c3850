import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from familycal.app.app import create_app
from familycal.app.dependencies import get_credential_store
from familycal.app.session import get_current_admin, require_admin
from familycal.config import Settings
from familycal.db.credential_store import CredentialStore
from familycal.models import AdminUser
from familycal.utils.encryption import TokenCipher
from tests._fakes import FakeSettingsRepository

ADMIN = AdminUser(
    id="google-42",
    email="parent@example.com",
    name="Pat Parent",
    picture="https://lh3.googleusercontent.com/a/pat",
)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="postgresql://test@localhost/test",
        google_client_id="client-123",
        google_client_secret="shh",
        google_redirect_uri="http://localhost:3000/auth/google/callback",
        encryption_key="test-encryption-key-with-32-plus-chars",
        session_secret="test-session-secret-with-32-plus-chars",
        public_dashboard_base_url="http://localhost:5173",
    )


@pytest.fixture
def stored_settings() -> FakeSettingsRepository:
    """The admin settings table behind the credential store."""
    return FakeSettingsRepository()


@pytest.fixture
def credential_store(settings: Settings, stored_settings) -> CredentialStore:
    return CredentialStore(stored_settings, TokenCipher(settings.encryption_key))


@pytest.fixture
def app(settings: Settings, credential_store: CredentialStore) -> FastAPI:
    """An app with no services started; tests override the dependencies they use."""
    app = create_app(settings=settings)
    app.dependency_overrides[get_credential_store] = lambda: credential_store
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Test client without an admin session."""
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def auth_client(app: FastAPI) -> TestClient:
    """Test client signed in as the admin."""
    app.dependency_overrides[require_admin] = lambda: ADMIN
    app.dependency_overrides[get_current_admin] = lambda: ADMIN
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def admin() -> AdminUser:
    return ADMIN
