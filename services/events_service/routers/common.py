"""Helpers shared by the member and admin event routers."""

import uuid
from typing import Iterable, Optional

from fastapi import Depends, HTTPException
from libs.auth.dependencies import get_optional_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db, get_session_factory
from services.events_service.models import Event, EventRegistration, RegistrationStatus
from services.events_service.schemas import EventResponse
from services.events_service.services.certifications import (
    certification_display_names,
)
from services.events_service.services.context import build_access_context
from services.events_service.services.enums import RegistrationReason
from services.events_service.services.notifications import NotificationDispatcher
from services.events_service.services.types import AccessContext
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


async def get_access_context(
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
) -> AccessContext:
    """Resolve the caller (possibly anonymous) into an AccessContext."""
    return await build_access_context(db, current_user)


def get_notification_dispatcher(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> NotificationDispatcher:
    return NotificationDispatcher(session_factory)


async def load_event(db: AsyncSession, event_id: uuid.UUID) -> Event:
    result = await db.execute(select(Event).where(Event.id == event_id))
    event = result.scalar_one_or_none()
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


async def registered_counts(
    db: AsyncSession, event_ids: Iterable[uuid.UUID]
) -> dict[uuid.UUID, int]:
    """Confirmed (registered) headcount per event, in one query."""
    event_ids = list(event_ids)
    if not event_ids:
        return {}
    result = await db.execute(
        select(EventRegistration.event_id, func.count(EventRegistration.id))
        .where(
            EventRegistration.event_id.in_(event_ids),
            EventRegistration.status == RegistrationStatus.REGISTERED,
        )
        .group_by(EventRegistration.event_id)
    )
    return {row[0]: row[1] for row in result.all()}


def _event_response_dict(event: Event, registered: int = 0) -> dict:
    """Build an EventResponse-compatible dict with live counts."""
    spots_remaining = None
    if event.max_capacity is not None:
        spots_remaining = max(event.max_capacity - registered, 0)
    return {
        "id": event.id,
        "title": event.title,
        "description": event.description,
        "event_type": event.event_type,
        "location": event.location,
        "start_time": event.start_time,
        "end_time": event.end_time,
        "max_capacity": event.max_capacity,
        "registration_deadline": event.registration_deadline,
        "cost": event.cost or 0,
        "requires_certification": event.requires_certification,
        "is_public": bool(event.is_public),
        "members_only": bool(event.members_only),
        "board_only": bool(event.board_only),
        "status": event.status,
        "registration_count": registered,
        "spots_remaining": spots_remaining,
    }


def event_response(event: Event, registered: int = 0) -> EventResponse:
    return EventResponse.model_validate(_event_response_dict(event, registered))


def raise_for_reason(
    reason: RegistrationReason, missing: Iterable[str] = ()
) -> None:
    """Turn a rejected engine result into the matching HTTP error."""
    detail = {"code": reason.value, "message": reason.message}
    missing = list(missing)
    if missing:
        detail["missing_certifications"] = missing
        detail["missing_certification_names"] = certification_display_names(missing)
    raise HTTPException(status_code=reason.http_status, detail=detail)
