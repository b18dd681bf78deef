"""Shared fixtures: in-memory SQLite app, controllable clock, recording notifier."""
import pytest
from fastapi.testclient import TestClient

from rollcall.config import Settings
from rollcall.database import Database
from rollcall.main import create_app
from rollcall.services.auth_flow import AuthFlow
from rollcall.services.security import TokenIssuer
from tests.factories import FakeClock, RecordingNotifier


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        app_env="test",
        database_url="sqlite+pysqlite:///:memory:",
        access_token_secret="test-access-secret-0123456789abcdef",
        refresh_token_secret="test-refresh-secret-0123456789abcdef",
        reset_token_secret="test-reset-secret-0123456789abcdef",
        bcrypt_rounds=4,
        cookie_secure=False,
        frontend_base_url="http://frontend.test",
        cleanup_cron_enabled=False,
        mailgun_api_key="",
        mailgun_domain="",
        sendgrid_api_key="",
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def database(settings):
    database = Database(settings.database_url)
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def db(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def issuer(settings, clock):
    return TokenIssuer(settings, clock=clock)


@pytest.fixture
def flow(db, settings, issuer, notifier, clock):
    return AuthFlow(db, settings, issuer, notifier, clock=clock)


@pytest.fixture
def app(settings, notifier, clock):
    return create_app(settings, notifier=notifier, clock=clock)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def app_db(app, client):
    """Session on the app's own database, for asserting what requests stored."""
    session = app.state.database.session()
    yield session
    session.close()


