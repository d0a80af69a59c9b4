"""Pytest fixtures for service and API tests."""

import os
import uuid
from collections.abc import Generator
from datetime import datetime, timezone

os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_db
from app.core.clock import FixedClock
from app.core.enums import DEFAULT_NOTIFICATION_KINDS, Platform
from app.core.quiet_hours import build_quiet_window
from app.core.security import create_access_token
from app.db import models  # noqa: F401  # Imported for side effects
from app.db.base import Base
from app.db.models import NotificationSubscription, User
from app.main import create_app
from app.providers.notifications.registry import ProviderRegistry
from app.services.composition import build_notification_dispatcher
from app.utils.exceptions import DeliveryError

# Wednesday 2024-01-10, 12:00 UTC
NOON_WEDNESDAY = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)


class RecordingProvider:
    """Channel provider double that remembers what it was asked to send."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.sent: list[tuple[uuid.UUID, str]] = []

    def send(self, subscription, payload) -> None:
        self.sent.append((subscription.id, payload.title))
        if self.error is not None:
            raise self.error


class FailingProvider(RecordingProvider):
    def __init__(self, message: str = "Push service returned HTTP 500") -> None:
        super().__init__(DeliveryError(message))


@pytest.fixture()
def db_engine():
    # Fresh database per test: event rows cannot be deleted through the ORM.
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(db_engine) -> Generator[Session, None, None]:
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=db_engine, expire_on_commit=False
    )
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def user(db_session: Session) -> User:
    user = User(email="rider@example.com", full_name="Test Rider", is_active=True)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture()
def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(NOON_WEDNESDAY)


@pytest.fixture()
def make_subscription(db_session: Session):
    """Factory for subscriptions with an all-week 09:00-18:00 UTC window by default."""

    counter = {"n": 0}

    def _make(
        user: User,
        platform: Platform = Platform.WEB,
        *,
        kinds: dict[str, bool] | None = None,
        window=...,
        granted: bool = True,
    ) -> NotificationSubscription:
        counter["n"] += 1
        subscription = NotificationSubscription(
            user_id=user.id,
            device_identifier=f"{platform.value}-device-{counter['n']}",
            platform=platform.value,
            is_permission_granted=granted,
        )
        if platform is Platform.WEB:
            subscription.endpoint = f"https://push.example.com/send/{counter['n']}"
            subscription.keys = {"p256dh": "client-public", "auth": "client-auth"}
        elif platform is Platform.EMAIL:
            subscription.destination = user.email
        else:
            subscription.destination = f"device-address-{counter['n']}"
        if kinds is not None:
            subscription.notification_kinds = {**DEFAULT_NOTIFICATION_KINDS, **kinds}
        if window is ...:
            window = build_quiet_window(9, 18, range(7), "UTC")
        subscription.quiet_window = window
        db_session.add(subscription)
        db_session.commit()
        return subscription

    return _make


@pytest.fixture()
def providers() -> ProviderRegistry:
    return ProviderRegistry(
        web=RecordingProvider(),
        android=RecordingProvider(),
        ios=RecordingProvider(),
        email=RecordingProvider(),
    )


@pytest.fixture()
def dispatcher(db_session: Session, clock: FixedClock, providers: ProviderRegistry):
    return build_notification_dispatcher(db_session, clock=clock, providers=providers)
