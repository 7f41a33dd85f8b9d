"""Admin event endpoints: create, edit, cancel, roster, check-in."""

import json
import uuid
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.datetime_utils import ensure_utc
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.events_service.models import (
    Event,
    EventCapacityLedger,
    EventStatus,
    RegistrationStatus,
)
from services.events_service.routers.common import (
    event_response,
    get_notification_dispatcher,
    load_event,
    raise_for_reason,
    registered_counts,
)
from services.events_service.schemas import (
    EventCancel,
    EventCancelResponse,
    EventCreate,
    EventResponse,
    EventUpdate,
    RegistrationResponse,
)
from services.events_service.services.notifications import NotificationDispatcher
from services.events_service.services.registration import (
    cancel_event,
    check_in,
    fill_open_slots,
)
from services.events_service.services.repository import RegistrationRepository
from services.members_service.models import Member
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

router = APIRouter(prefix="/events/admin", tags=["events-admin"])


def _encode_certifications(cert_ids: Optional[list[str]]) -> Optional[str]:
    return json.dumps(cert_ids) if cert_ids else None


async def _admin_member_id(db: AsyncSession, admin: AuthUser) -> Optional[uuid.UUID]:
    """Admins acting through the service role have no member profile."""
    result = await db.execute(select(Member.id).where(Member.auth_id == admin.user_id))
    return result.scalar_one_or_none()


@router.get("/", response_model=List[EventResponse])
async def admin_list_events(
    event_status: Optional[EventStatus] = Query(None, alias="status"),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """List every event, drafts and cancelled ones included."""
    query = select(Event).order_by(Event.start_time.asc())
    if event_status:
        query = query.where(Event.status == event_status)
    result = await db.execute(query)
    events = result.scalars().all()

    counts = await registered_counts(db, [event.id for event in events])
    return [event_response(event, counts.get(event.id, 0)) for event in events]


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    event_data: EventCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Create an event along with its capacity ledger."""
    event_dict_in = event_data.model_dump(exclude={"requires_certification"})
    event = Event(
        id=uuid.uuid4(),
        **event_dict_in,
        requires_certification=_encode_certifications(
            event_data.requires_certification
        ),
        created_by=await _admin_member_id(db, current_user),
    )
    db.add(event)
    db.add(EventCapacityLedger(event_id=event.id, confirmed_count=0, next_waitlist_seq=1))
    await db.commit()

    logger.info("Event %s created by %s", event.id, current_user.user_id)
    return event_response(event)


@router.patch("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: uuid.UUID,
    event_data: EventUpdate,
    background_tasks: BackgroundTasks,
    current_user: AuthUser = Depends(require_admin),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Update an event.

    Raising (or removing) the capacity promotes waitlisted members into the
    new slots. Cancelling goes through the cancel endpoint so registrants are
    notified and refunded.
    """
    event = await load_event(db, event_id)
    if event.status == EventStatus.CANCELLED:
        raise HTTPException(status_code=400, detail="Cancelled events cannot be edited")

    update_fields = event_data.model_dump(exclude_unset=True)
    if update_fields.get("status") == EventStatus.CANCELLED:
        raise HTTPException(
            status_code=400, detail="Use the cancel endpoint to cancel an event"
        )
    if "requires_certification" in update_fields:
        update_fields["requires_certification"] = _encode_certifications(
            update_fields["requires_certification"]
        )

    start_time = ensure_utc(update_fields.get("start_time", event.start_time))
    end_time = ensure_utc(update_fields.get("end_time", event.end_time))
    if start_time is None or end_time is None or end_time <= start_time:
        raise HTTPException(status_code=400, detail="end_time must be after start_time")

    capacity_changed = (
        "max_capacity" in update_fields
        and update_fields["max_capacity"] != event.max_capacity
    )
    for field, value in update_fields.items():
        setattr(event, field, value)
    await db.commit()

    if capacity_changed:
        notifications = await fill_open_slots(db, event)
        if notifications:
            logger.info(
                "Capacity change on event %s promoted %d waitlisted members",
                event.id,
                len(notifications),
            )
            background_tasks.add_task(dispatcher.dispatch, notifications)

    counts = await registered_counts(db, [event.id])
    return event_response(event, counts.get(event.id, 0))


@router.post("/{event_id}/cancel", response_model=EventCancelResponse)
async def admin_cancel_event(
    event_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    payload: Optional[EventCancel] = None,
    current_user: AuthUser = Depends(require_admin),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    db: AsyncSession = Depends(get_async_db),
):
    """Cancel an event; every active registration is cancelled with a full refund."""
    event = await load_event(db, event_id)
    if event.status == EventStatus.CANCELLED:
        raise HTTPException(status_code=400, detail="Event is already cancelled")

    reason = payload.reason if payload else None
    notifications = await cancel_event(db, event, reason=reason)
    if notifications:
        background_tasks.add_task(dispatcher.dispatch, notifications)

    return EventCancelResponse(
        event=event_response(event),
        cancelled_registrations=len(notifications),
    )


@router.get("/{event_id}/registrations", response_model=List[RegistrationResponse])
async def admin_list_registrations(
    event_id: uuid.UUID,
    registration_status: Optional[RegistrationStatus] = Query(None, alias="status"),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Roster for an event in sign-up order, optionally filtered by status."""
    event = await load_event(db, event_id)
    registrations = await RegistrationRepository(db).list_for_event(
        event.id, status=registration_status
    )
    return [RegistrationResponse.model_validate(r) for r in registrations]


@router.post(
    "/{event_id}/check-in/{member_id}", response_model=RegistrationResponse
)
async def admin_check_in(
    event_id: uuid.UUID,
    member_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Mark a registered member as present."""
    event = await load_event(db, event_id)
    result = await check_in(
        db,
        event,
        member_id,
        checked_in_by=await _admin_member_id(db, current_user),
    )
    if not result.ok:
        raise_for_reason(result.reason)
    return RegistrationResponse.model_validate(result.registration)
