"""Unit tests for the registration transition table and the per-event lock registry."""

import asyncio
import uuid

import pytest
from services.events_service.models import EventRegistration, RegistrationStatus
from services.events_service.services.capacity import has_free_slot
from services.events_service.services.enums import (
    RegistrationAction,
    RegistrationReason,
    RegistrationState,
)
from services.events_service.services.errors import InvalidTransitionError
from services.events_service.services.locks import EventLockRegistry
from services.events_service.services.registration import (
    TRANSITIONS,
    next_state,
    state_of,
)


@pytest.mark.unit
@pytest.mark.parametrize(
    "state,action,expected",
    [
        (RegistrationState.UNREGISTERED, RegistrationAction.REGISTER, RegistrationState.REGISTERED),
        (RegistrationState.UNREGISTERED, RegistrationAction.WAITLIST, RegistrationState.WAITLISTED),
        (RegistrationState.WAITLISTED, RegistrationAction.PROMOTE, RegistrationState.REGISTERED),
        (RegistrationState.REGISTERED, RegistrationAction.CANCEL, RegistrationState.CANCELLED),
        (RegistrationState.WAITLISTED, RegistrationAction.CANCEL, RegistrationState.CANCELLED),
    ],
)
def test_allowed_transitions(state, action, expected):
    assert next_state(state, action) == expected


@pytest.mark.unit
def test_every_other_transition_is_rejected():
    for state in RegistrationState:
        for action in RegistrationAction:
            if (state, action) in TRANSITIONS:
                continue
            with pytest.raises(InvalidTransitionError):
                next_state(state, action)


@pytest.mark.unit
def test_cancelled_is_terminal():
    for action in RegistrationAction:
        with pytest.raises(InvalidTransitionError):
            next_state(RegistrationState.CANCELLED, action)


@pytest.mark.unit
def test_state_of_missing_row_is_unregistered():
    assert state_of(None) == RegistrationState.UNREGISTERED

    row = EventRegistration(
        event_id=uuid.uuid4(),
        member_id=uuid.uuid4(),
        status=RegistrationStatus.WAITLISTED,
    )
    assert state_of(row) == RegistrationState.WAITLISTED


@pytest.mark.unit
def test_reason_http_mapping():
    assert RegistrationReason.AUTH_REQUIRED.http_status == 401
    assert RegistrationReason.ALREADY_REGISTERED.http_status == 409
    assert RegistrationReason.NOT_REGISTERED.http_status == 404
    assert RegistrationReason.EVENT_NOT_OPEN.http_status == 400
    assert RegistrationReason.MISSING_CERTIFICATIONS.http_status == 403
    for reason in RegistrationReason:
        assert reason.message


@pytest.mark.unit
def test_has_free_slot():
    assert has_free_slot(100, None) is True
    assert has_free_slot(0, 1) is True
    assert has_free_slot(1, 1) is False
    assert has_free_slot(5, 3) is False


@pytest.mark.asyncio
@pytest.mark.unit
async def test_event_lock_serializes_same_event():
    registry = EventLockRegistry()
    event_id = uuid.uuid4()
    order = []

    async def worker(name):
        async with registry.hold(event_id):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))

    assert order in (
        ["a-in", "a-out", "b-in", "b-out"],
        ["b-in", "b-out", "a-in", "a-out"],
    )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_event_lock_does_not_block_other_events():
    registry = EventLockRegistry()
    first, second = uuid.uuid4(), uuid.uuid4()

    async with registry.hold(first):
        # Would deadlock if events shared a lock
        await asyncio.wait_for(_enter(registry, second), timeout=1)


async def _enter(registry, event_id):
    async with registry.hold(event_id):
        return True


@pytest.mark.unit
def test_idle_locks_are_dropped():
    registry = EventLockRegistry()
    registry.lock_for(uuid.uuid4())
    assert len(registry) == 0
