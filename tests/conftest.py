import pytest
from fastapi.testclient import TestClient

from sitetrack.auth.security import get_password_hash
from sitetrack.config import Settings
from sitetrack.main import create_app
from sitetrack.models.models import User


EMAIL = "engineer@sitetrack.io"
PASSWORD = "concrete-pour-42"


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        auto_create_db=True,
        enable_metrics=False,
        rate_limit="10000/minute",
        jwt_secret="test-secret",
        log_level="WARNING",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        db = app.state.session_factory()
        try:
            db.add(User(email=EMAIL, password_hash=get_password_hash(PASSWORD), full_name="Site Engineer"))
            db.commit()
        finally:
            db.close()
        yield c


@pytest.fixture
def tokens(client):
    r = client.post("/auth/signin", json={"email": EMAIL, "password": PASSWORD})
    assert r.status_code == 200, r.text
    return r.json()


@pytest.fixture
def auth_client(client, tokens):
    client.headers.update({"Authorization": f"Bearer {tokens['access_token']}"})
    return client


@pytest.fixture
def db(app, client):
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()
