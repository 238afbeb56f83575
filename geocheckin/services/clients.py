from __future__ import annotations
from typing import Protocol
import httpx

from ..exceptions import EventNotFound, ProfileNotFound
from ..schemas import EventLocation, Profile

class ProfileClient(Protocol):
    async def get_by_id(self, user_id: str) -> Profile: ...


class HttpProfileClient:
    def __init__(self, base_url: str, *, token: str | None = None, timeout: float = 5.0, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._transport = transport

    async def get_by_id(self, user_id: str) -> Profile:
        """Return the profile, raise ProfileNotFound on 404."""
        url = f"{self.base_url}/profiles/{user_id}"
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        async with httpx.AsyncClient(transport=self._transport) as client:
            r = await client.get(url, headers=headers, timeout=self.timeout)
        if r.status_code == 404:
            raise ProfileNotFound(user_id)
        r.raise_for_status()
        return Profile.model_validate(r.json())


class HttpEventClient:
    def __init__(self, base_url: str, *, token: str | None = None, timeout: float = 5.0, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._transport = transport

    async def get_location(self, event_id: str) -> EventLocation:
        url = f"{self.base_url}/events/{event_id}"
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        async with httpx.AsyncClient(transport=self._transport) as client:
            r = await client.get(url, headers=headers, timeout=self.timeout)
        if r.status_code == 404:
            raise EventNotFound(event_id)
        r.raise_for_status()
        return EventLocation.from_event_document(r.json(), event_id=event_id)
