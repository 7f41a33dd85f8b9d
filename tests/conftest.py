"""Shared fixtures for the events service: HTTP client, auth overrides, notification capture."""

import uuid
from contextlib import contextmanager
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from libs.auth.dependencies import get_current_user, get_optional_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db, get_session_factory
from services.events_service.app.main import app
from services.events_service.routers.common import get_notification_dispatcher


def make_member_user(user_id: Optional[str] = None, email: Optional[str] = None) -> AuthUser:
    """AuthUser for a regular member. Pass the member's auth_id as ``user_id``."""
    user_id = user_id or f"user-{uuid.uuid4().hex[:8]}"
    return AuthUser(user_id=user_id, email=email or f"{user_id}@club.org", role="authenticated")


def make_admin_user(user_id: Optional[str] = None) -> AuthUser:
    user_id = user_id or f"admin-{uuid.uuid4().hex[:8]}"
    return AuthUser(user_id=user_id, email="admin@club.org", role="admin")


@contextmanager
def override_auth(target_app, user: Optional[AuthUser]):
    """Act as ``user`` (or anonymously, with None) for requests in the block."""
    previous = {
        dep: target_app.dependency_overrides.get(dep)
        for dep in (get_current_user, get_optional_user)
    }
    target_app.dependency_overrides[get_optional_user] = lambda: user
    if user is not None:
        target_app.dependency_overrides[get_current_user] = lambda: user
    else:
        target_app.dependency_overrides.pop(get_current_user, None)
    try:
        yield user
    finally:
        for dep, override in previous.items():
            if override is None:
                target_app.dependency_overrides.pop(dep, None)
            else:
                target_app.dependency_overrides[dep] = override


class RecordingDispatcher:
    """Stands in for NotificationDispatcher; keeps what would have been sent."""

    def __init__(self, sink: list):
        self.sink = sink

    async def dispatch(self, notifications) -> int:
        notifications = list(notifications)
        self.sink.extend(notifications)
        return len(notifications)


@pytest.fixture
def sent_notifications() -> list:
    return []


@pytest_asyncio.fixture
async def events_client(
    session_factory, sent_notifications
) -> AsyncGenerator[AsyncClient, None]:
    """
    AsyncClient for the events app against the per-test database.

    Each request gets its own session, as in production. Requests are
    anonymous until a test wraps them in ``override_auth``.
    """

    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_db] = _get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_notification_dispatcher] = lambda: RecordingDispatcher(
        sent_notifications
    )
    app.dependency_overrides[get_optional_user] = lambda: None

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
