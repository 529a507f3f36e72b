from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from fleet.backend.api.main import create_app
from fleet.backend.config import Settings
from fleet.backend.db.session import init_db, make_engine, make_session_factory
from fleet.backend.repositories.user_repository import UserRepository
from fleet.backend.services.errors import EmailDeliveryError
from fleet.backend.services.security import PasswordHasher, TokenService

STRONG_PASSWORD = "Passw0rd1"
ADMIN_EMAIL = "admin.user@rigaku.com"
ADMIN_PASSWORD = "AdminPass1"


class RecordingEmailSender:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self.fail = False

    def send_email(self, to: str, subject: str, html_body: str) -> None:
        if self.fail:
            raise EmailDeliveryError("Failed to send email. Please try again later.")
        self.sent.append((to, subject, html_body))


class StubEmailValidator:
    def __init__(self) -> None:
        self.rejected: set[str] = set()

    def is_valid_email(self, email: str) -> bool:
        return email.lower() not in self.rejected


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite://",
        jwt_secret_key="test-secret-key-that-is-definitely-long-enough",
        bcrypt_rounds=4,
    )


@pytest.fixture
def engine():
    eng = make_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def db_session(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def email_validator() -> StubEmailValidator:
    return StubEmailValidator()


@pytest.fixture
def hasher(settings) -> PasswordHasher:
    return PasswordHasher(rounds=settings.bcrypt_rounds)


@pytest.fixture
def token_service(settings) -> TokenService:
    return TokenService(settings)


@pytest.fixture
def app(settings, session_factory, email_sender, email_validator):
    return create_app(
        settings,
        session_factory=session_factory,
        email_sender=email_sender,
        email_validator=email_validator,
    )


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def register(client, email: str, password: str = STRONG_PASSWORD):
    return client.post("/api/auth/register", json={"email": email, "password": password})


def login(client, email: str, password: str = STRONG_PASSWORD):
    return client.post("/api/auth/login", json={"email": email, "password": password})


@pytest.fixture
def user_token(client) -> str:
    resp = register(client, "regular.user@rigaku.com")
    assert resp.status_code == 200, resp.text
    return resp.json()["token"]


@pytest.fixture
def admin_token(client, session_factory, hasher) -> str:
    with session_factory() as session:
        UserRepository(session).create(
            email=ADMIN_EMAIL,
            username="Admin User",
            password_hash=hasher.hash(ADMIN_PASSWORD),
            is_admin=True,
        )
        session.commit()

    resp = login(client, ADMIN_EMAIL, ADMIN_PASSWORD)
    assert resp.status_code == 200, resp.text
    return resp.json()["token"]
