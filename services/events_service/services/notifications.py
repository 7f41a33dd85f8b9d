"""Turn engine notifications into templated emails.

Runs after the registration transaction has committed (as a FastAPI
background task), with its own session. A failed send is logged and never
affects the registration it describes.
"""

import uuid
from typing import Iterable, Optional

from libs.common.emails.client import EmailClient, get_email_client
from libs.common.logging import get_logger
from services.events_service.models import Event
from services.events_service.services.types import RegistrationNotification
from services.members_service.models import Member
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = get_logger(__name__)


def build_template_data(
    notification: RegistrationNotification, member: Member, event: Event
) -> dict:
    data = {
        "member_name": member.first_name,
        "event_title": event.title,
        "event_start": event.start_time.isoformat(),
        "event_location": event.location,
    }
    if notification.waitlist_position is not None:
        data["waitlist_position"] = notification.waitlist_position
    if notification.refund_percent is not None:
        data["refund_percent"] = notification.refund_percent
    if notification.reason:
        data["reason"] = notification.reason
    return data


class NotificationDispatcher:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        email_client: Optional[EmailClient] = None,
    ):
        self.session_factory = session_factory
        self.email_client = email_client or get_email_client()

    async def dispatch(self, notifications: Iterable[RegistrationNotification]) -> int:
        """Send every notification. Returns how many were accepted for delivery."""
        notifications = list(notifications)
        if not notifications:
            return 0

        member_ids = {n.member_id for n in notifications}
        event_ids = {n.event_id for n in notifications}

        async with self.session_factory() as db:
            members = await self._load(db, Member, member_ids)
            events = await self._load(db, Event, event_ids)

        sent = 0
        for notification in notifications:
            member = members.get(notification.member_id)
            event = events.get(notification.event_id)
            if member is None or event is None:
                logger.warning(
                    "Skipping %s notification: member %s or event %s not found",
                    notification.kind.value,
                    notification.member_id,
                    notification.event_id,
                )
                continue

            ok = await self.email_client.send_template(
                template_type=notification.kind.value,
                to_email=member.email,
                template_data=build_template_data(notification, member, event),
            )
            if ok:
                sent += 1
            else:
                logger.warning(
                    "Notification %s for member %s was not delivered",
                    notification.kind.value,
                    member.id,
                )
        return sent

    @staticmethod
    async def _load(db: AsyncSession, model, ids: set[uuid.UUID]) -> dict:
        result = await db.execute(select(model).where(model.id.in_(ids)))
        return {row.id: row for row in result.scalars().all()}
