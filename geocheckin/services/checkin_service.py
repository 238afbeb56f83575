from __future__ import annotations
import asyncio
import logging

from ..exceptions import LocationUnavailable, NoActiveCheckIn, StoreError
from ..schemas import CheckInRecord, EventLocation, Profile
from .admission import AdmissionController
from .attendees import AttendeeAggregator
from .checkins import CheckInStore

logger = logging.getLogger(__name__)

class CheckInService:
    """Public check-in operations composed from the store, the gate and the aggregator.

    Failures are raised as the ``CheckInError`` subclasses from ``exceptions``
    without re-wrapping.
    """

    def __init__(
        self,
        store: CheckInStore,
        aggregator: AttendeeAggregator,
        gate: AdmissionController,
        *,
        admission_timeout: float | None = None,
        lenient_status_reads: bool = False,
    ):
        self.store = store
        self.aggregator = aggregator
        self.gate = gate
        self.admission_timeout = admission_timeout
        self.lenient_status_reads = lenient_status_reads

    async def check_in(self, user_id: str, event_id: str) -> CheckInRecord:
        record = await self.store.create(user_id, event_id)
        logger.info("checked in user=%s event=%s id=%s", user_id, event_id, record.id)
        return record

    async def check_in_with_location_validation(
        self, user_id: str, event_id: str, event: EventLocation
    ) -> CheckInRecord:
        if event.event_id != event_id:
            raise ValueError("event does not match event_id")
        try:
            decision = await asyncio.wait_for(self.gate.validate(user_id, event), timeout=self.admission_timeout)
        except asyncio.TimeoutError:
            logger.info("admission timed out user=%s event=%s", user_id, event_id)
            raise LocationUnavailable() from None
        if not decision.admitted:
            raise decision.reason
        return await self.check_in(user_id, event_id)

    async def check_out(self, user_id: str, event_id: str) -> CheckInRecord:
        record = await self.store.find_active(user_id, event_id)
        if record is None:
            raise NoActiveCheckIn(user_id, event_id)
        closed = await self.store.deactivate(record)
        logger.info("checked out user=%s event=%s id=%s", user_id, event_id, record.id)
        return closed

    async def is_checked_in(self, user_id: str, event_id: str) -> bool:
        try:
            return await self.store.find_active(user_id, event_id) is not None
        except StoreError:
            if not self.lenient_status_reads:
                raise
            # legacy: unreadable status shows as "not checked in"
            logger.warning("status read failed user=%s event=%s, reporting False", user_id, event_id)
            return False

    async def get_check_in_count(self, event_id: str) -> int:
        return await self.store.count_active(event_id)

    async def get_attendees(self, event_id: str) -> list[Profile]:
        user_ids = await self.store.list_active_user_ids(event_id)
        return await self.aggregator.fetch_profiles(user_ids)

    async def get_roster(self, event_id: str, limit: int = 50) -> list[CheckInRecord]:
        return await self.store.list_active(event_id, limit=limit)
