"""Tests for turning engine notifications into template emails."""

import uuid

import pytest
from services.events_service.services.enums import NotificationKind
from services.events_service.services.notifications import NotificationDispatcher
from services.events_service.services.types import RegistrationNotification
from tests.factories import EventFactory, MemberFactory


class FakeEmailClient:
    def __init__(self, succeed=True):
        self.succeed = succeed
        self.sent = []

    async def send_template(self, template_type, to_email, template_data):
        self.sent.append((template_type, to_email, template_data))
        return self.succeed


@pytest.mark.asyncio
@pytest.mark.unit
async def test_dispatch_sends_one_template_per_notification(db_session, session_factory):
    member = MemberFactory.create(first_name="Dana", email="dana@club.org")
    event = EventFactory.create(title="Steel Match")
    db_session.add_all([member, event])
    await db_session.commit()

    client = FakeEmailClient()
    dispatcher = NotificationDispatcher(session_factory, email_client=client)
    sent = await dispatcher.dispatch(
        [
            RegistrationNotification(
                kind=NotificationKind.WAITLISTED,
                event_id=event.id,
                member_id=member.id,
                waitlist_position=3,
            ),
            RegistrationNotification(
                kind=NotificationKind.CANCELLED,
                event_id=event.id,
                member_id=member.id,
                refund_percent=100,
            ),
        ]
    )

    assert sent == 2
    (first_type, first_to, first_data), (second_type, _, second_data) = client.sent
    assert first_type == "event_waitlisted"
    assert first_to == "dana@club.org"
    assert first_data["member_name"] == "Dana"
    assert first_data["event_title"] == "Steel Match"
    assert first_data["waitlist_position"] == 3
    assert second_type == "event_registration_cancelled"
    assert second_data["refund_percent"] == 100


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unknown_member_is_skipped(db_session, session_factory):
    event = EventFactory.create()
    db_session.add(event)
    await db_session.commit()

    client = FakeEmailClient()
    dispatcher = NotificationDispatcher(session_factory, email_client=client)
    sent = await dispatcher.dispatch(
        [
            RegistrationNotification(
                kind=NotificationKind.PROMOTED,
                event_id=event.id,
                member_id=uuid.uuid4(),
            )
        ]
    )

    assert sent == 0
    assert client.sent == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_failed_send_is_counted_not_raised(db_session, session_factory):
    member = MemberFactory.create()
    event = EventFactory.create()
    db_session.add_all([member, event])
    await db_session.commit()

    dispatcher = NotificationDispatcher(
        session_factory, email_client=FakeEmailClient(succeed=False)
    )
    sent = await dispatcher.dispatch(
        [
            RegistrationNotification(
                kind=NotificationKind.REGISTERED,
                event_id=event.id,
                member_id=member.id,
            )
        ]
    )

    assert sent == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_nothing_to_send(session_factory):
    dispatcher = NotificationDispatcher(session_factory, email_client=FakeEmailClient())
    assert await dispatcher.dispatch([]) == 0
