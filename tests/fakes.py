from __future__ import annotations
import asyncio
import uuid
from typing import Any, Mapping

from geocheckin.exceptions import DocumentConflict, ProfileNotFound
from geocheckin.schemas import Coordinates, LocationFix, Profile


class MemoryDocumentStore:
    """Dict-backed document store. ``unique_active`` mimics the partial unique index."""

    def __init__(self, unique_active: bool = True):
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}
        self.unique_active = unique_active
        self.fail: Exception | None = None

    def _check(self):
        if self.fail is not None:
            raise self.fail

    @staticmethod
    def _match(doc, predicate):
        return all(doc.get(k) == v for k, v in predicate.items())

    async def insert(self, collection: str, record: Mapping[str, Any]) -> str:
        await asyncio.sleep(0)
        self._check()
        docs = self.collections.setdefault(collection, {})
        if self.unique_active and record.get("is_active"):
            for d in docs.values():
                if d["is_active"] and d["user_id"] == record["user_id"] and d["event_id"] == record["event_id"]:
                    raise DocumentConflict(collection, dict(record))
        doc_id = str(uuid.uuid4())
        docs[doc_id] = {**record, "id": doc_id}
        return doc_id

    async def query(self, collection, predicate, *, limit=None, order_by=None):
        await asyncio.sleep(0)
        self._check()
        rows = [dict(d) for d in self.collections.get(collection, {}).values() if self._match(d, predicate)]
        if order_by:
            key = order_by.lstrip("-")
            rows.sort(key=lambda d: d[key], reverse=order_by.startswith("-"))
        return rows[:limit] if limit is not None else rows

    async def update(self, collection, doc_id, fields, *, where=None):
        await asyncio.sleep(0)
        self._check()
        doc = self.collections.get(collection, {}).get(doc_id)
        if doc is None or not self._match(doc, where or {}):
            return 0
        doc.update(fields)
        return 1

    async def count(self, collection, predicate):
        return len(await self.query(collection, predicate))


class FakeLocationProvider:
    def __init__(self, permission: bool = True, fix: LocationFix | None = None):
        self.permission = permission
        self.fix = fix
        # what the device "sends" once a fix is requested
        self.fix_on_request: LocationFix | None = None
        self.requests: list[str] = []

    async def has_permission(self, user_id: str) -> bool:
        return self.permission

    async def current_fix(self, user_id: str) -> LocationFix | None:
        return self.fix

    async def request_one_shot_fix(self, user_id: str) -> None:
        self.requests.append(user_id)
        if self.fix_on_request is not None:
            self.fix = self.fix_on_request


class FakeProfileClient:
    def __init__(self, profiles: dict[str, Profile] | None = None):
        self.profiles = dict(profiles or {})
        self.errors: dict[str, Exception] = {}
        self.calls: list[str] = []

    async def get_by_id(self, user_id: str) -> Profile:
        self.calls.append(user_id)
        await asyncio.sleep(0)
        if user_id in self.errors:
            raise self.errors[user_id]
        if user_id not in self.profiles:
            raise ProfileNotFound(user_id)
        return self.profiles[user_id]


class SleepRecorder:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def fix_at(lat: float, lon: float) -> LocationFix:
    return LocationFix(coordinates=Coordinates(latitude=lat, longitude=lon))


