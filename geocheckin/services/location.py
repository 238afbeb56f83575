from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Protocol
import redis.asyncio as redis
from pydantic import ValidationError

from ..exceptions import LocationUnavailable
from ..schemas import LocationFix

logger = logging.getLogger(__name__)

class LocationProvider(Protocol):
    async def has_permission(self, user_id: str) -> bool: ...

    async def current_fix(self, user_id: str) -> LocationFix | None: ...

    async def request_one_shot_fix(self, user_id: str) -> None: ...


def _perm_key(user_id: str) -> str:
    return f"loc:perm:{user_id}"

def _fix_key(user_id: str) -> str:
    return f"loc:fix:{user_id}"


class RedisLocationProvider:
    """Per-user permission flag and latest fix, as reported by the user's device.

    Fixes expire after ``fix_ttl_seconds`` so a stale reading is never used. Asking
    for a new fix publishes a request the device answers by reporting a fix.
    """

    def __init__(
        self,
        client: redis.Redis,
        *,
        fix_ttl_seconds: int,
        publish_request: Callable[[dict], Awaitable[None]],
    ):
        self.client = client
        self.fix_ttl_seconds = fix_ttl_seconds
        self._publish_request = publish_request

    async def has_permission(self, user_id: str) -> bool:
        try:
            return await self.client.get(_perm_key(user_id)) == "1"
        except redis.RedisError as e:
            raise LocationUnavailable() from e

    async def current_fix(self, user_id: str) -> LocationFix | None:
        try:
            raw = await self.client.get(_fix_key(user_id))
        except redis.RedisError as e:
            raise LocationUnavailable() from e
        if not raw:
            return None
        try:
            return LocationFix.model_validate_json(raw)
        except ValidationError:
            logger.warning("discarding unreadable fix for user=%s", user_id)
            return None

    async def request_one_shot_fix(self, user_id: str) -> None:
        evt = {"user_id": user_id, "requested_at": datetime.now(timezone.utc).isoformat()}
        try:
            await self._publish_request(evt)
        except Exception:
            # fire-and-forget: the retry simply finds no fix
            logger.warning("fix request for user=%s not delivered", user_id, exc_info=True)

    # ---- device side ----
    async def set_permission(self, user_id: str, granted: bool) -> None:
        await self.client.set(_perm_key(user_id), "1" if granted else "0")
        if not granted:
            await self.client.delete(_fix_key(user_id))

    async def record_fix(self, user_id: str, fix: LocationFix) -> None:
        await self.client.set(_fix_key(user_id), fix.model_dump_json(), ex=self.fix_ttl_seconds)
