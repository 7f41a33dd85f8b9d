"""Capacity ledger: atomic slot reservation per event.

Backed by one ``event_capacity_ledgers`` row per event, locked with
``SELECT ... FOR UPDATE`` for the rest of the transaction. A ledger instance
belongs to a single transaction; create a new one per engine call.
"""

import uuid
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.events_service.models import Event, EventCapacityLedger
from services.events_service.services.errors import CapacityInvariantError
from services.events_service.services.repository import RegistrationRepository
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


def has_free_slot(confirmed_count: int, capacity: Optional[int]) -> bool:
    """Unlimited events (capacity None) always have room."""
    return capacity is None or confirmed_count < capacity


class CapacityLedger:
    def __init__(self, db: AsyncSession, repository: RegistrationRepository):
        self.db = db
        self.repository = repository
        self._rows: dict[uuid.UUID, EventCapacityLedger] = {}

    async def lock(self, event: Event) -> EventCapacityLedger:
        """Lock (creating if needed) the ledger row for ``event``."""
        row = self._rows.get(event.id)
        if row is not None:
            return row

        row = await self._select_for_update(event.id)
        if row is None:
            await self._create_row(event)
            row = await self._select_for_update(event.id)

        self._rows[event.id] = row
        return row

    async def _select_for_update(self, event_id: uuid.UUID) -> Optional[EventCapacityLedger]:
        result = await self.db.execute(
            select(EventCapacityLedger)
            .where(EventCapacityLedger.event_id == event_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _create_row(self, event: Event) -> None:
        """Insert the ledger row seeded from the current registrations.

        Another process may insert the same row first; the conflict is
        skipped and the caller locks whichever row won.
        """
        confirmed = await self.repository.count_registered(event.id)
        next_seq = await self.repository.max_waitlist_seq(event.id) + 1

        dialect = self.db.get_bind().dialect.name
        insert = sqlite_insert if dialect == "sqlite" else postgresql_insert
        result = await self.db.execute(
            insert(EventCapacityLedger.__table__)
            .values(
                event_id=event.id,
                confirmed_count=confirmed,
                next_waitlist_seq=next_seq,
                updated_at=utc_now(),
            )
            .on_conflict_do_nothing(index_elements=["event_id"])
        )
        if result.rowcount:
            logger.info(
                "Initialized capacity ledger for event %s (confirmed=%d)",
                event.id,
                confirmed,
            )

    async def reserve(self, event: Event) -> bool:
        """Take one slot if one is free. Returns False when the event is full."""
        row = await self.lock(event)
        capacity = event.max_capacity

        if capacity is None:
            return True

        if not has_free_slot(row.confirmed_count, capacity):
            return False

        registered = await self.repository.count_registered(event.id)
        if registered >= capacity:
            logger.error(
                "Capacity overrun on event %s: ledger=%d registered=%d capacity=%d",
                event.id,
                row.confirmed_count,
                registered,
                capacity,
            )
            raise CapacityInvariantError(
                "Event already holds as many registrations as its capacity",
                details={
                    "event_id": str(event.id),
                    "ledger_count": row.confirmed_count,
                    "registered_count": registered,
                    "capacity": capacity,
                },
            )
        if registered != row.confirmed_count:
            logger.warning(
                "Capacity ledger drift on event %s: ledger=%d registered=%d",
                event.id,
                row.confirmed_count,
                registered,
            )

        row.confirmed_count += 1
        return True

    async def release(self, event: Event) -> None:
        """Give a slot back. Floored at zero; a no-op for unlimited events."""
        row = await self.lock(event)
        if event.max_capacity is None:
            return
        row.confirmed_count = max(row.confirmed_count - 1, 0)

    async def next_waitlist_seq(self, event: Event) -> int:
        """Hand out the next enqueue order number for ``event``."""
        row = await self.lock(event)
        seq = row.next_waitlist_seq
        row.next_waitlist_seq = seq + 1
        return seq

    async def reset(self, event: Event) -> None:
        row = await self.lock(event)
        row.confirmed_count = 0

    async def resync(self, event: Event) -> int:
        """Recompute ``confirmed_count`` from registered rows."""
        row = await self.lock(event)
        row.confirmed_count = await self.repository.count_registered(event.id)
        return row.confirmed_count
