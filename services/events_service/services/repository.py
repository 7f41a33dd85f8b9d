"""Registration persistence.

Thin query layer over ``event_registrations``. It never commits: the engine
owns the transaction so a registration and its ledger update land together.
"""

import uuid
from datetime import datetime
from typing import Optional, Sequence

from libs.common.datetime_utils import utc_now
from services.events_service.models import (
    ACTIVE_REGISTRATION_STATUSES,
    EventRegistration,
    RegistrationStatus,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession


def _select_registrations():
    # Rows may already sit in the identity map from an earlier transaction on
    # this session; always overwrite them with what the database holds now.
    return select(EventRegistration).execution_options(populate_existing=True)


class RegistrationRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        *,
        event_id: uuid.UUID,
        member_id: uuid.UUID,
        status: RegistrationStatus,
        waitlist_seq: Optional[int] = None,
        waitlist_position: Optional[int] = None,
        division: Optional[str] = None,
        classification: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> EventRegistration:
        now = now or utc_now()
        registration = EventRegistration(
            event_id=event_id,
            member_id=member_id,
            status=status,
            waitlist_seq=waitlist_seq,
            waitlist_position=waitlist_position,
            division=division,
            classification=classification,
            created_at=now,
            updated_at=now,
        )
        self.db.add(registration)
        await self.db.flush()
        return registration

    async def update_status(
        self,
        registration: EventRegistration,
        status: RegistrationStatus,
        *,
        now: Optional[datetime] = None,
        **fields,
    ) -> EventRegistration:
        registration.status = status
        for name, value in fields.items():
            setattr(registration, name, value)
        registration.updated_at = now or utc_now()
        await self.db.flush()
        return registration

    async def find_active_for(
        self, event_id: uuid.UUID, member_id: uuid.UUID
    ) -> Optional[EventRegistration]:
        result = await self.db.execute(
            _select_registrations().where(
                EventRegistration.event_id == event_id,
                EventRegistration.member_id == member_id,
                EventRegistration.status.in_(ACTIVE_REGISTRATION_STATUSES),
            )
        )
        return result.scalar_one_or_none()

    async def find_registered_for(
        self, event_id: uuid.UUID, member_id: uuid.UUID
    ) -> Optional[EventRegistration]:
        result = await self.db.execute(
            _select_registrations().where(
                EventRegistration.event_id == event_id,
                EventRegistration.member_id == member_id,
                EventRegistration.status == RegistrationStatus.REGISTERED,
            )
        )
        return result.scalar_one_or_none()

    def _waitlist_query(self, event_id: uuid.UUID):
        return (
            _select_registrations()
            .where(
                EventRegistration.event_id == event_id,
                EventRegistration.status == RegistrationStatus.WAITLISTED,
            )
            .order_by(
                EventRegistration.waitlist_seq.asc(),
                EventRegistration.created_at.asc(),
                EventRegistration.id.asc(),
            )
        )

    async def list_waitlist_ordered(
        self, event_id: uuid.UUID
    ) -> Sequence[EventRegistration]:
        result = await self.db.execute(self._waitlist_query(event_id))
        return result.scalars().all()

    async def first_waitlisted(self, event_id: uuid.UUID) -> Optional[EventRegistration]:
        result = await self.db.execute(self._waitlist_query(event_id).limit(1))
        return result.scalar_one_or_none()

    async def count_with_status(
        self, event_id: uuid.UUID, status: RegistrationStatus
    ) -> int:
        result = await self.db.execute(
            select(func.count(EventRegistration.id)).where(
                EventRegistration.event_id == event_id,
                EventRegistration.status == status,
            )
        )
        return result.scalar() or 0

    async def count_registered(self, event_id: uuid.UUID) -> int:
        return await self.count_with_status(event_id, RegistrationStatus.REGISTERED)

    async def count_waitlisted_before(self, registration: EventRegistration) -> int:
        result = await self.db.execute(
            select(func.count(EventRegistration.id)).where(
                EventRegistration.event_id == registration.event_id,
                EventRegistration.status == RegistrationStatus.WAITLISTED,
                EventRegistration.waitlist_seq < registration.waitlist_seq,
            )
        )
        return result.scalar() or 0

    async def max_waitlist_seq(self, event_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.max(EventRegistration.waitlist_seq)).where(
                EventRegistration.event_id == event_id
            )
        )
        return result.scalar() or 0

    async def list_active_for_event(
        self, event_id: uuid.UUID
    ) -> Sequence[EventRegistration]:
        result = await self.db.execute(
            _select_registrations()
            .where(
                EventRegistration.event_id == event_id,
                EventRegistration.status.in_(ACTIVE_REGISTRATION_STATUSES),
            )
            .order_by(EventRegistration.created_at.asc())
        )
        return result.scalars().all()

    async def list_for_event(
        self, event_id: uuid.UUID, status: Optional[RegistrationStatus] = None
    ) -> Sequence[EventRegistration]:
        query = _select_registrations().where(EventRegistration.event_id == event_id)
        if status is not None:
            query = query.where(EventRegistration.status == status)
        result = await self.db.execute(query.order_by(EventRegistration.created_at.asc()))
        return result.scalars().all()

    async def list_for_member(
        self, member_id: uuid.UUID, limit: int = 50
    ) -> Sequence[EventRegistration]:
        result = await self.db.execute(
            _select_registrations()
            .where(EventRegistration.member_id == member_id)
            .order_by(EventRegistration.created_at.desc())
            .limit(limit)
        )
        return result.scalars().all()
