"""Per-event FIFO waitlist over waitlisted registrations.

Order comes from ``waitlist_seq``, handed out by the locked capacity ledger,
so enqueue order is linearized per event. ``waitlist_position`` is only the
position at enqueue time, kept for display; promotion never reads it.
"""

import uuid
from dataclasses import dataclass
from typing import Optional, Sequence

from services.events_service.models import (
    Event,
    EventRegistration,
    RegistrationStatus,
)
from services.events_service.services.capacity import CapacityLedger
from services.events_service.services.repository import RegistrationRepository


@dataclass(frozen=True)
class WaitlistTicket:
    seq: int
    position: int


class WaitlistQueue:
    def __init__(self, repository: RegistrationRepository, ledger: CapacityLedger):
        self.repository = repository
        self.ledger = ledger

    async def length(self, event_id: uuid.UUID) -> int:
        return await self.repository.count_with_status(
            event_id, RegistrationStatus.WAITLISTED
        )

    async def enqueue(self, event: Event) -> WaitlistTicket:
        """Reserve the tail of the queue. The caller stores the registration."""
        seq = await self.ledger.next_waitlist_seq(event)
        position = await self.length(event.id) + 1
        return WaitlistTicket(seq=seq, position=position)

    async def pop(self, event_id: uuid.UUID) -> Optional[EventRegistration]:
        """Head of the queue: the member who has waited longest.

        The entry leaves the queue when its status changes, which the caller
        must do in the same transaction.
        """
        return await self.repository.first_waitlisted(event_id)

    async def entries(self, event_id: uuid.UUID) -> Sequence[EventRegistration]:
        return await self.repository.list_waitlist_ordered(event_id)

    async def position_of(self, registration: EventRegistration) -> Optional[int]:
        """Live 1-based position, or None if the registration is not waiting."""
        if (
            registration.status != RegistrationStatus.WAITLISTED
            or registration.waitlist_seq is None
        ):
            return None
        return await self.repository.count_waitlisted_before(registration) + 1
