"""Member-facing event endpoints: browse, register, cancel."""

import uuid
from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    HTTPException,
    Query,
    Response,
    status,
)
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.events_service.models import Event, EventCategory, EventStatus
from services.events_service.routers.common import (
    event_response,
    get_access_context,
    get_notification_dispatcher,
    load_event,
    raise_for_reason,
    registered_counts,
)
from services.events_service.schemas import (
    CancelResponse,
    EventDetailResponse,
    EventResponse,
    MyRegistrationResponse,
    RegisterRequest,
    RegisterResponse,
    RegistrationResponse,
)
from services.events_service.services.access import can_view, filter_visible_events
from services.events_service.services.calendar import build_calendar
from services.events_service.services.certifications import (
    certification_display_names,
)
from services.events_service.services.enums import RegistrationReason
from services.events_service.services.notifications import NotificationDispatcher
from services.events_service.services.registration import (
    cancel_registration,
    register_for_event,
    registration_eligibility,
    waitlist_position,
)
from services.events_service.services.repository import RegistrationRepository
from services.events_service.services.types import (
    AccessContext,
    RegistrationEligibility,
)
from services.members_service.models import Member
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

router = APIRouter(prefix="/events", tags=["events"])

CALENDAR_EVENT_LIMIT = 100


@router.get("/", response_model=List[EventResponse])
async def list_events(
    event_type: Optional[EventCategory] = Query(None, description="Filter by event type"),
    start: Optional[datetime] = Query(None, description="Earliest start time (default: now)"),
    end: Optional[datetime] = Query(None, description="Latest start time"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    ctx: AccessContext = Depends(get_access_context),
    db: AsyncSession = Depends(get_async_db),
):
    """
    List published, upcoming events the caller is allowed to see.

    Without an explicit window this covers the next EVENT_LIST_HORIZON_DAYS.
    Pages are taken after visibility filtering.
    """
    start = start or utc_now()
    end = end or start + timedelta(days=get_settings().EVENT_LIST_HORIZON_DAYS)

    query = select(Event).where(
        Event.status == EventStatus.PUBLISHED,
        Event.start_time >= start,
        Event.start_time <= end,
    )
    if event_type:
        query = query.where(Event.event_type == event_type)
    query = query.order_by(Event.start_time.asc(), Event.id.asc())

    result = await db.execute(query)
    visible = filter_visible_events(result.scalars().all(), ctx)
    offset = (page - 1) * limit
    events = visible[offset : offset + limit]

    counts = await registered_counts(db, [event.id for event in events])
    return [event_response(event, counts.get(event.id, 0)) for event in events]


@router.get("/calendar.ics", response_class=Response)
async def calendar_feed(db: AsyncSession = Depends(get_async_db)):
    """iCal feed of published public events over the listing horizon."""
    now = utc_now()
    result = await db.execute(
        select(Event)
        .where(
            Event.status == EventStatus.PUBLISHED,
            Event.is_public.is_(True),
            Event.start_time >= now,
            Event.start_time <= now + timedelta(days=get_settings().EVENT_LIST_HORIZON_DAYS),
        )
        .order_by(Event.start_time.asc())
        .limit(CALENDAR_EVENT_LIMIT)
    )
    events = filter_visible_events(result.scalars().all(), AccessContext.anonymous())
    return Response(
        content=build_calendar(events),
        media_type="text/calendar; charset=utf-8",
        headers={
            "Content-Disposition": 'attachment; filename="events.ics"',
            "Cache-Control": "public, max-age=3600",
        },
    )


@router.get("/my-registrations", response_model=List[MyRegistrationResponse])
async def list_my_registrations(
    limit: int = Query(50, ge=1, le=200),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """The caller's registrations, newest first, with their events."""
    result = await db.execute(select(Member).where(Member.auth_id == current_user.user_id))
    member = result.scalar_one_or_none()
    if not member:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Member profile not found.",
        )

    registrations = await RegistrationRepository(db).list_for_member(member.id, limit=limit)
    event_ids = {registration.event_id for registration in registrations}
    events = {}
    if event_ids:
        event_result = await db.execute(select(Event).where(Event.id.in_(event_ids)))
        events = {event.id: event for event in event_result.scalars().all()}
    counts = await registered_counts(db, event_ids)

    responses = []
    for registration in registrations:
        data = RegistrationResponse.model_validate(registration).model_dump()
        data["waitlist_position"] = await waitlist_position(db, registration)
        event = events.get(registration.event_id)
        if event is not None:
            data["event"] = event_response(event, counts.get(event.id, 0))
        responses.append(MyRegistrationResponse.model_validate(data))
    return responses


@router.get("/{event_id}", response_model=EventDetailResponse)
async def get_event(
    event_id: uuid.UUID,
    ctx: AccessContext = Depends(get_access_context),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Get a single event, with whether the caller can register and why not.

    Events the caller cannot see, and unpublished drafts, are reported as not found.
    """
    event = await load_event(db, event_id)
    if event.status == EventStatus.DRAFT or not can_view(event, ctx):
        raise HTTPException(status_code=404, detail="Event not found")

    counts = await registered_counts(db, [event.id])
    eligibility = registration_eligibility(event, ctx, utc_now())

    my_status = None
    my_position = None
    if ctx.member is not None:
        mine = await RegistrationRepository(db).find_active_for(event.id, ctx.member.id)
        if mine is not None:
            my_status = mine.status
            my_position = await waitlist_position(db, mine)
            if eligibility.allowed:
                eligibility = RegistrationEligibility.deny(
                    RegistrationReason.ALREADY_REGISTERED
                )

    data = event_response(event, counts.get(event.id, 0)).model_dump()
    data.update(
        can_register=eligibility.allowed,
        reason=eligibility.reason,
        reason_message=eligibility.reason.message if eligibility.reason else None,
        missing_certifications=list(eligibility.missing_certifications),
        missing_certification_names=certification_display_names(
            eligibility.missing_certifications
        ),
        my_registration_status=my_status,
        my_waitlist_position=my_position,
    )
    return EventDetailResponse.model_validate(data)


@router.post(
    "/{event_id}/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register(
    event_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    payload: Optional[RegisterRequest] = None,
    ctx: AccessContext = Depends(get_access_context),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Register the caller for an event.

    A full event puts the caller on the waitlist instead. Rejections carry a
    machine-readable reason code and, for certification gaps, the missing ids.
    """
    event = await load_event(db, event_id)
    details = payload or RegisterRequest()
    result = await register_for_event(
        db,
        event,
        ctx,
        division=details.division,
        classification=details.classification,
    )
    if not result.ok:
        raise_for_reason(result.reason, result.missing_certifications)

    if result.notifications:
        background_tasks.add_task(dispatcher.dispatch, result.notifications)

    if result.waitlisted:
        message = f"Event is full. Added to waitlist at position {result.waitlist_position}."
    else:
        message = "Successfully registered for event."
    return RegisterResponse(
        registration=RegistrationResponse.model_validate(result.registration),
        waitlisted=result.waitlisted,
        waitlist_position=result.waitlist_position,
        message=message,
    )


@router.delete("/{event_id}/register", response_model=CancelResponse)
async def cancel(
    event_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    ctx: AccessContext = Depends(get_access_context),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Cancel the caller's registration.

    Freeing a confirmed spot promotes the head of the waitlist.
    """
    if ctx.user is None:
        raise_for_reason(RegistrationReason.AUTH_REQUIRED)
    if ctx.member is None:
        raise_for_reason(RegistrationReason.NO_MEMBER_PROFILE)

    event = await load_event(db, event_id)
    result = await cancel_registration(db, event, ctx.member.id)
    if not result.ok:
        raise_for_reason(result.reason)

    if result.notifications:
        background_tasks.add_task(dispatcher.dispatch, result.notifications)

    return CancelResponse(
        message=f"Registration cancelled. Refund: {result.refund_percent}%.",
        refund_percent=result.refund_percent,
        promoted_member_id=result.promoted_member_id,
    )
