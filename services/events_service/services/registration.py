"""Event registration state machine.

Drives a registration through its lifecycle::

    unregistered --register--> registered --cancel--> cancelled
    unregistered --waitlist--> waitlisted --promote--> registered
                               waitlisted --cancel---> cancelled

Every write for an event happens inside that event's critical section:

1. Acquire the in-process per-event lock
2. SELECT FOR UPDATE on the event's capacity ledger row
3. Re-read the event and re-validate eligibility
4. Apply the transition(s) and ledger changes
5. Commit, then release the lock

Eligibility and state conflicts come back as results. Storage failures raise
``RegistrationStorageError`` and capacity overruns raise
``CapacityInvariantError``; neither is ever reported as "not eligible".
"""

import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional

from libs.common.datetime_utils import ensure_utc, utc_now
from libs.common.logging import get_logger
from services.events_service.models import (
    Event,
    EventRegistration,
    EventStatus,
    RegistrationStatus,
)
from services.events_service.services.access import can_register
from services.events_service.services.capacity import CapacityLedger
from services.events_service.services.enums import (
    NotificationKind,
    RegistrationAction,
    RegistrationReason,
    RegistrationState,
)
from services.events_service.services.errors import (
    CapacityInvariantError,
    InvalidTransitionError,
    RegistrationStorageError,
)
from services.events_service.services.locks import EventLockRegistry, event_locks
from services.events_service.services.refunds import (
    FULL_REFUND_PERCENT,
    refund_percentage,
)
from services.events_service.services.repository import RegistrationRepository
from services.events_service.services.types import (
    AccessContext,
    CancellationResult,
    RegistrationEligibility,
    RegistrationNotification,
    RegistrationResult,
)
from services.events_service.services.waitlist import WaitlistQueue
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Transition table
# ---------------------------------------------------------------------------

TRANSITIONS: dict[tuple[RegistrationState, RegistrationAction], RegistrationState] = {
    (RegistrationState.UNREGISTERED, RegistrationAction.REGISTER): RegistrationState.REGISTERED,
    (RegistrationState.UNREGISTERED, RegistrationAction.WAITLIST): RegistrationState.WAITLISTED,
    (RegistrationState.WAITLISTED, RegistrationAction.PROMOTE): RegistrationState.REGISTERED,
    (RegistrationState.REGISTERED, RegistrationAction.CANCEL): RegistrationState.CANCELLED,
    (RegistrationState.WAITLISTED, RegistrationAction.CANCEL): RegistrationState.CANCELLED,
}


def next_state(state: RegistrationState, action: RegistrationAction) -> RegistrationState:
    """Apply ``action`` to ``state`` or raise InvalidTransitionError."""
    try:
        return TRANSITIONS[(state, action)]
    except KeyError:
        raise InvalidTransitionError(
            f"Cannot {action.value} a registration that is {state.value}",
            details={"state": state.value, "action": action.value},
        ) from None


def state_of(registration: Optional[EventRegistration]) -> RegistrationState:
    """Logical state of a (possibly missing) registration row."""
    if registration is None:
        return RegistrationState.UNREGISTERED
    return RegistrationState(registration.status.value)


def _persisted(state: RegistrationState) -> RegistrationStatus:
    return RegistrationStatus(state.value)


# ---------------------------------------------------------------------------
# Critical section
# ---------------------------------------------------------------------------


class _EventTransaction:
    """Collaborators for one locked transaction on one event."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = RegistrationRepository(db)
        self.ledger = CapacityLedger(db, self.repository)
        self.waitlist = WaitlistQueue(self.repository, self.ledger)


async def _abort(db: AsyncSession) -> None:
    try:
        await db.rollback()
    except SQLAlchemyError:
        logger.exception("Rollback failed")


def _storage_error(
    exc: SQLAlchemyError, event_id: uuid.UUID, operation: str
) -> RegistrationStorageError:
    logger.error("Storage failure during %s on event %s: %s", operation, event_id, exc)
    return RegistrationStorageError(
        "Registration storage is unavailable",
        details={"event_id": str(event_id), "operation": operation},
    )


@asynccontextmanager
async def _locked_transaction(
    db: AsyncSession,
    event: Event,
    locks: EventLockRegistry,
    operation: str,
    *,
    allow_conflict: bool = False,
) -> AsyncIterator[_EventTransaction]:
    """Hold the event's lock for the whole transaction, commit on success.

    With ``allow_conflict`` an ``IntegrityError`` is re-raised for the caller
    to resolve; otherwise it is a storage failure like any other.
    """
    event_id = event.id
    async with locks.hold(event_id):
        try:
            tx = _EventTransaction(db)
            await tx.ledger.lock(event)
            await db.refresh(event)
            yield tx
            await db.commit()
        except (CapacityInvariantError, InvalidTransitionError):
            await _abort(db)
            raise
        except IntegrityError as exc:
            await _abort(db)
            if allow_conflict:
                raise
            raise _storage_error(exc, event_id, operation) from exc
        except SQLAlchemyError as exc:
            await _abort(db)
            raise _storage_error(exc, event_id, operation) from exc


def registration_eligibility(
    event: Event, ctx: AccessContext, now: datetime
) -> RegistrationEligibility:
    """``can_register`` plus the event's own state: published and before its deadline."""
    eligibility = can_register(event, ctx)
    if not eligibility.allowed:
        return eligibility

    if event.status != EventStatus.PUBLISHED:
        return RegistrationEligibility.deny(RegistrationReason.EVENT_NOT_OPEN)

    deadline = ensure_utc(event.registration_deadline)
    if deadline is not None and ensure_utc(now) > deadline:
        return RegistrationEligibility.deny(RegistrationReason.REGISTRATION_CLOSED)

    return eligibility


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


async def register_for_event(
    db: AsyncSession,
    event: Event,
    ctx: AccessContext,
    *,
    division: Optional[str] = None,
    classification: Optional[str] = None,
    now: Optional[datetime] = None,
    locks: EventLockRegistry = event_locks,
) -> RegistrationResult:
    """Register the context's member for ``event``, waitlisting when full.

    ``event`` must belong to ``db``; it is re-read under the lock so capacity
    and status are current. Eligibility is always re-evaluated here rather
    than trusted from an earlier page load.
    """
    now = now or utc_now()
    event_id = event.id
    member_id = ctx.member.id if ctx.member else None

    try:
        async with _locked_transaction(
            db, event, locks, "register", allow_conflict=True
        ) as tx:
            eligibility = registration_eligibility(event, ctx, now)
            if not eligibility.allowed:
                result = RegistrationResult.rejected(
                    eligibility.reason, eligibility.missing_certifications
                )
            else:
                result = await _register_locked(
                    tx, event, member_id, now, division=division, classification=classification
                )
    except IntegrityError as exc:
        result = await _resolve_conflict(db, event_id, member_id, exc)

    if result.ok:
        logger.info(
            "Member %s %s for event %s",
            member_id,
            "waitlisted" if result.waitlisted else "registered",
            event_id,
        )
    else:
        logger.info(
            "Registration rejected for member %s on event %s: %s",
            member_id,
            event_id,
            result.reason.value,
        )
    return result


async def _resolve_conflict(
    db: AsyncSession,
    event_id: uuid.UUID,
    member_id: uuid.UUID,
    exc: IntegrityError,
) -> RegistrationResult:
    """A unique violation is a duplicate only if the member now holds an active row."""
    try:
        existing = await RegistrationRepository(db).find_active_for(event_id, member_id)
    except SQLAlchemyError as lookup_exc:
        raise _storage_error(lookup_exc, event_id, "register") from exc
    if existing is None:
        raise _storage_error(exc, event_id, "register") from exc

    logger.info(
        "Concurrent duplicate registration for member %s on event %s",
        member_id,
        event_id,
    )
    return RegistrationResult(
        ok=False,
        reason=RegistrationReason.ALREADY_REGISTERED,
        registration=existing,
    )


async def _register_locked(
    tx: _EventTransaction,
    event: Event,
    member_id: uuid.UUID,
    now: datetime,
    *,
    division: Optional[str] = None,
    classification: Optional[str] = None,
) -> RegistrationResult:
    existing = await tx.repository.find_active_for(event.id, member_id)
    if existing is not None:
        return RegistrationResult(
            ok=False,
            reason=RegistrationReason.ALREADY_REGISTERED,
            registration=existing,
        )

    if await tx.ledger.reserve(event):
        state = next_state(RegistrationState.UNREGISTERED, RegistrationAction.REGISTER)
        registration = await tx.repository.create(
            event_id=event.id,
            member_id=member_id,
            status=_persisted(state),
            division=division,
            classification=classification,
            now=now,
        )
        return RegistrationResult(
            ok=True,
            registration=registration,
            notifications=[
                RegistrationNotification(
                    kind=NotificationKind.REGISTERED,
                    event_id=event.id,
                    member_id=member_id,
                )
            ],
        )

    state = next_state(RegistrationState.UNREGISTERED, RegistrationAction.WAITLIST)
    ticket = await tx.waitlist.enqueue(event)
    registration = await tx.repository.create(
        event_id=event.id,
        member_id=member_id,
        status=_persisted(state),
        waitlist_seq=ticket.seq,
        waitlist_position=ticket.position,
        division=division,
        classification=classification,
        now=now,
    )
    return RegistrationResult(
        ok=True,
        registration=registration,
        waitlisted=True,
        waitlist_position=ticket.position,
        notifications=[
            RegistrationNotification(
                kind=NotificationKind.WAITLISTED,
                event_id=event.id,
                member_id=member_id,
                waitlist_position=ticket.position,
            )
        ],
    )


async def _promote_next(
    tx: _EventTransaction, event: Event, now: datetime
) -> Optional[EventRegistration]:
    """Move the longest-waiting registration into a free slot, if both exist."""
    head = await tx.waitlist.pop(event.id)
    if head is None:
        return None

    state = next_state(state_of(head), RegistrationAction.PROMOTE)
    if not await tx.ledger.reserve(event):
        return None

    await tx.repository.update_status(
        head,
        _persisted(state),
        now=now,
        promoted_at=now,
        waitlist_position=None,
    )
    logger.info("Promoted member %s from waitlist for event %s", head.member_id, event.id)
    return head


async def cancel_registration(
    db: AsyncSession,
    event: Event,
    member_id: uuid.UUID,
    *,
    now: Optional[datetime] = None,
    locks: EventLockRegistry = event_locks,
) -> CancellationResult:
    """Cancel ``member_id``'s active registration for ``event``.

    A freed slot goes to the head of the waitlist in the same transaction.
    Cancelling a waitlisted registration only leaves the queue.
    """
    now = now or utc_now()
    event_id = event.id

    async with _locked_transaction(db, event, locks, "cancel") as tx:
        registration = await tx.repository.find_active_for(event.id, member_id)
        if registration is None:
            result = CancellationResult.rejected(RegistrationReason.NOT_REGISTERED)
        else:
            result = await _cancel_locked(tx, event, registration, now)

    if result.ok:
        logger.info(
            "Member %s cancelled registration for event %s (refund=%d%%, promoted=%s)",
            member_id,
            event_id,
            result.refund_percent,
            result.promoted_member_id,
        )
    return result


async def _cancel_locked(
    tx: _EventTransaction,
    event: Event,
    registration: EventRegistration,
    now: datetime,
) -> CancellationResult:
    previous = state_of(registration)
    state = next_state(previous, RegistrationAction.CANCEL)
    refund = refund_percentage(now, event.start_time)

    await tx.repository.update_status(
        registration,
        _persisted(state),
        now=now,
        cancelled_at=now,
        refund_percent=refund,
        waitlist_position=None,
    )
    notifications = [
        RegistrationNotification(
            kind=NotificationKind.CANCELLED,
            event_id=event.id,
            member_id=registration.member_id,
            refund_percent=refund,
        )
    ]

    promoted = None
    if previous == RegistrationState.REGISTERED:
        await tx.ledger.release(event)
        promoted = await _promote_next(tx, event, now)
        if promoted is not None:
            notifications.append(
                RegistrationNotification(
                    kind=NotificationKind.PROMOTED,
                    event_id=event.id,
                    member_id=promoted.member_id,
                )
            )

    return CancellationResult(
        ok=True,
        registration=registration,
        refund_percent=refund,
        promoted_member_id=promoted.member_id if promoted else None,
        notifications=notifications,
    )


async def resync_ledger(
    db: AsyncSession,
    event: Event,
    *,
    locks: EventLockRegistry = event_locks,
) -> int:
    """Recompute the event's confirmed count from its registered rows."""
    async with _locked_transaction(db, event, locks, "resync_ledger") as tx:
        confirmed = await tx.ledger.resync(event)
    logger.info("Resynced capacity ledger for event %s (confirmed=%d)", event.id, confirmed)
    return confirmed


async def fill_open_slots(
    db: AsyncSession,
    event: Event,
    *,
    now: Optional[datetime] = None,
    locks: EventLockRegistry = event_locks,
) -> list[RegistrationNotification]:
    """Resync the ledger and promote waitlisted members into any free slots.

    Used after an admin changes an event's capacity.
    """
    now = now or utc_now()
    notifications: list[RegistrationNotification] = []

    async with _locked_transaction(db, event, locks, "fill_open_slots") as tx:
        confirmed = await tx.ledger.resync(event)
        logger.info("Resynced capacity ledger for event %s (confirmed=%d)", event.id, confirmed)
        while True:
            promoted = await _promote_next(tx, event, now)
            if promoted is None:
                break
            notifications.append(
                RegistrationNotification(
                    kind=NotificationKind.PROMOTED,
                    event_id=event.id,
                    member_id=promoted.member_id,
                )
            )

    return notifications


async def cancel_event(
    db: AsyncSession,
    event: Event,
    *,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
    locks: EventLockRegistry = event_locks,
) -> list[RegistrationNotification]:
    """Cancel the event itself and every active registration on it.

    Registrants are refunded in full since the club called it off.
    """
    now = now or utc_now()
    notifications: list[RegistrationNotification] = []

    async with _locked_transaction(db, event, locks, "cancel_event") as tx:
        event.status = EventStatus.CANCELLED
        event.cancelled_at = now
        event.cancellation_reason = reason
        event.updated_at = now

        for registration in await tx.repository.list_active_for_event(event.id):
            state = next_state(state_of(registration), RegistrationAction.CANCEL)
            await tx.repository.update_status(
                registration,
                _persisted(state),
                now=now,
                cancelled_at=now,
                refund_percent=FULL_REFUND_PERCENT,
                waitlist_position=None,
            )
            notifications.append(
                RegistrationNotification(
                    kind=NotificationKind.EVENT_CANCELLED,
                    event_id=event.id,
                    member_id=registration.member_id,
                    refund_percent=FULL_REFUND_PERCENT,
                    reason=reason,
                )
            )

        await tx.ledger.reset(event)

    logger.info(
        "Event %s cancelled; %d registrations cancelled", event.id, len(notifications)
    )
    return notifications


async def check_in(
    db: AsyncSession,
    event: Event,
    member_id: uuid.UUID,
    *,
    checked_in_by: Optional[uuid.UUID] = None,
    now: Optional[datetime] = None,
    locks: EventLockRegistry = event_locks,
) -> RegistrationResult:
    """Mark a registered member as present. Waitlisted members cannot check in."""
    now = now or utc_now()

    async with _locked_transaction(db, event, locks, "check_in") as tx:
        registration = await tx.repository.find_registered_for(event.id, member_id)
        if registration is None:
            return RegistrationResult.rejected(RegistrationReason.NOT_REGISTERED)
        registration.checked_in_at = now
        registration.checked_in_by = checked_in_by
        registration.updated_at = now

    return RegistrationResult(ok=True, registration=registration)


async def waitlist_position(
    db: AsyncSession, registration: EventRegistration
) -> Optional[int]:
    """Live waitlist position for display. Reads only; takes no lock."""
    repository = RegistrationRepository(db)
    return await WaitlistQueue(repository, CapacityLedger(db, repository)).position_of(
        registration
    )
