from __future__ import annotations
import asyncio
import enum
import logging
from typing import Iterable

from ..exceptions import AttendeeLookupError, ProfileNotFound
from ..schemas import Profile
from .clients import ProfileClient

logger = logging.getLogger(__name__)

class LookupFailurePolicy(str, enum.Enum):
    SKIP = "skip"        # drop the profile, keep the rest
    COLLECT = "collect"  # raise AttendeeLookupError with partial results

class AttendeeAggregator:
    """Fetch many profiles concurrently and keep the ones that resolve."""

    def __init__(
        self,
        profiles: ProfileClient,
        *,
        on_lookup_failure: LookupFailurePolicy = LookupFailurePolicy.SKIP,
        max_concurrency: int | None = None,
    ):
        self.profiles = profiles
        self.on_lookup_failure = LookupFailurePolicy(on_lookup_failure)
        self._limit = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def _lookup(self, user_id: str) -> Profile:
        if self._limit is None:
            return await self.profiles.get_by_id(user_id)
        async with self._limit:
            return await self.profiles.get_by_id(user_id)

    async def fetch_profiles(self, user_ids: Iterable[str]) -> list[Profile]:
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return []

        results = await asyncio.gather(*(self._lookup(uid) for uid in ids), return_exceptions=True)

        profiles: list[Profile] = []
        seen: set[str] = set()
        failures: dict[str, Exception] = {}
        for uid, res in zip(ids, results):
            if isinstance(res, Exception):
                failures[uid] = res
                continue
            if isinstance(res, BaseException):
                raise res
            if res.id in seen:
                continue
            seen.add(res.id)
            profiles.append(res)

        for uid, err in failures.items():
            if isinstance(err, ProfileNotFound):
                logger.info("attendee %s has no profile", uid)
            else:
                logger.warning("profile lookup for %s failed: %r", uid, err)

        if failures and self.on_lookup_failure is LookupFailurePolicy.COLLECT:
            raise AttendeeLookupError(profiles, failures)
        return profiles
