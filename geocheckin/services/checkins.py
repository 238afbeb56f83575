from __future__ import annotations
import logging
from datetime import datetime, timezone

from ..exceptions import AlreadyCheckedIn, DocumentConflict, NoActiveCheckIn
from ..schemas import CheckInRecord
from .documents import DocumentStore

logger = logging.getLogger(__name__)

COLLECTION = "checkIns"

def _now():
    return datetime.now(timezone.utc)

def _require_ids(user_id: str, event_id: str) -> None:
    if not user_id or not event_id:
        raise ValueError("user_id and event_id are required")

class CheckInStore:
    """Check-in records on top of a document store.

    Keeps at most one active record per (user_id, event_id). ``create`` checks for an
    active record before writing; a store with a uniqueness rule on active rows
    (see ``models.CheckIn``) closes the window between the read and the write.
    """

    def __init__(self, documents: DocumentStore, collection: str = COLLECTION):
        self.documents = documents
        self.collection = collection

    async def create(self, user_id: str, event_id: str) -> CheckInRecord:
        _require_ids(user_id, event_id)
        # idempotency guard: one active row per user+event
        if await self.find_active(user_id, event_id) is not None:
            raise AlreadyCheckedIn(user_id, event_id)

        now = _now()
        doc = {
            "user_id": user_id,
            "event_id": event_id,
            "is_active": True,
            "checked_in_at": now,
            "checked_out_at": None,
            "updated_at": now,
        }
        try:
            doc_id = await self.documents.insert(self.collection, doc)
        except DocumentConflict:
            # lost the race against a concurrent create
            logger.info("concurrent check-in rejected user=%s event=%s", user_id, event_id)
            raise AlreadyCheckedIn(user_id, event_id) from None
        return CheckInRecord(id=doc_id, **doc)

    async def find_active(self, user_id: str, event_id: str) -> CheckInRecord | None:
        _require_ids(user_id, event_id)
        docs = await self.documents.query(
            self.collection,
            {"user_id": user_id, "event_id": event_id, "is_active": True},
            limit=1,
        )
        if not docs:
            return None
        return CheckInRecord.model_validate(docs[0])

    async def deactivate(self, record: CheckInRecord) -> CheckInRecord:
        if not record.is_active:
            raise NoActiveCheckIn(record.user_id, record.event_id)
        now = _now()
        fields = {"is_active": False, "checked_out_at": now, "updated_at": now}
        # conditional write: a concurrent checkout leaves nothing to update
        touched = await self.documents.update(self.collection, record.id, fields, where={"is_active": True})
        if touched == 0:
            raise NoActiveCheckIn(record.user_id, record.event_id)
        return record.model_copy(update=fields)

    async def count_active(self, event_id: str) -> int:
        n = await self.documents.count(self.collection, {"event_id": event_id, "is_active": True})
        return max(0, n)

    async def list_active_user_ids(self, event_id: str) -> set[str]:
        docs = await self.documents.query(self.collection, {"event_id": event_id, "is_active": True})
        return {d["user_id"] for d in docs}

    async def list_active(self, event_id: str, limit: int = 50) -> list[CheckInRecord]:
        docs = await self.documents.query(
            self.collection,
            {"event_id": event_id, "is_active": True},
            limit=limit,
            order_by="-checked_in_at",
        )
        return [CheckInRecord.model_validate(d) for d in docs]
