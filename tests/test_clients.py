from __future__ import annotations
import httpx
import pytest
import redis.asyncio as redis

from geocheckin.exceptions import EventNotFound, LocationUnavailable, ProfileNotFound
from geocheckin.schemas import Coordinates
from geocheckin.services.clients import HttpEventClient, HttpProfileClient
from geocheckin.services.location import RedisLocationProvider

from fakes import fix_at


def _transport(routes: dict[str, httpx.Response]):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return routes.get(request.url.path, httpx.Response(404))

    return httpx.MockTransport(handler), seen


async def test_profile_client_decodes_profile():
    transport, seen = _transport({
        "/profiles/u1": httpx.Response(200, json={"id": "u1", "firstName": "Uma", "age": 31}),
    })
    client = HttpProfileClient("http://profiles.test/", token="tkn", transport=transport)
    profile = await client.get_by_id("u1")
    assert profile.id == "u1"
    assert profile.first_name == "Uma"
    assert seen[0].headers["Authorization"] == "Bearer tkn"


async def test_profile_client_not_found():
    transport, _ = _transport({})
    client = HttpProfileClient("http://profiles.test", transport=transport)
    with pytest.raises(ProfileNotFound):
        await client.get_by_id("ghost")


async def test_profile_client_server_error_raises():
    transport, _ = _transport({"/profiles/u1": httpx.Response(500)})
    client = HttpProfileClient("http://profiles.test", transport=transport)
    with pytest.raises(httpx.HTTPStatusError):
        await client.get_by_id("u1")


async def test_event_client_reads_coordinates():
    transport, _ = _transport({
        "/events/e1": httpx.Response(200, json={"id": "e1", "coordinates": {"latitude": 40.0, "longitude": -74.0}}),
        "/events/e2": httpx.Response(200, json={"id": "e2", "eventName": "Mixer"}),
        "/events/e3": httpx.Response(200, json={"id": "e3", "coordinates": {"latitude": "n/a"}}),
    })
    client = HttpEventClient("http://events.test", transport=transport)
    assert (await client.get_location("e1")).coordinates == Coordinates(latitude=40.0, longitude=-74.0)
    assert (await client.get_location("e2")).coordinates is None
    # malformed coordinates degrade to "no location"
    assert (await client.get_location("e3")).coordinates is None


async def test_event_client_not_found():
    transport, _ = _transport({})
    client = HttpEventClient("http://events.test", transport=transport)
    with pytest.raises(EventNotFound):
        await client.get_location("nope")


class FakeRedis:
    def __init__(self):
        self.data = {}
        self.ttls = {}
        self.down = False

    def _check(self):
        if self.down:
            raise redis.ConnectionError("down")

    async def get(self, key):
        self._check()
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self._check()
        self.data[key] = value
        self.ttls[key] = ex

    async def delete(self, key):
        self._check()
        self.data.pop(key, None)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def requests_sent():
    return []


@pytest.fixture
def provider(fake_redis, requests_sent):
    async def publish(evt):
        requests_sent.append(evt)

    return RedisLocationProvider(fake_redis, fix_ttl_seconds=120, publish_request=publish)


async def test_permission_round_trip(provider):
    assert await provider.has_permission("u1") is False
    await provider.set_permission("u1", True)
    assert await provider.has_permission("u1") is True


async def test_fix_round_trip_with_ttl(provider, fake_redis):
    assert await provider.current_fix("u1") is None
    fix = fix_at(40.0, -74.0)
    await provider.record_fix("u1", fix)
    assert fake_redis.ttls["loc:fix:u1"] == 120
    got = await provider.current_fix("u1")
    assert got.coordinates == fix.coordinates


async def test_revoking_permission_drops_fix(provider):
    await provider.record_fix("u1", fix_at(40.0, -74.0))
    await provider.set_permission("u1", False)
    assert await provider.current_fix("u1") is None


async def test_unreadable_fix_is_treated_as_missing(provider, fake_redis):
    fake_redis.data["loc:fix:u1"] = "{not json"
    assert await provider.current_fix("u1") is None


async def test_fix_request_is_published(provider, requests_sent):
    await provider.request_one_shot_fix("u1")
    assert requests_sent[0]["user_id"] == "u1"


async def test_fix_request_failure_is_not_fatal(fake_redis):
    async def broken(evt):
        raise ConnectionError("nats down")

    provider = RedisLocationProvider(fake_redis, fix_ttl_seconds=120, publish_request=broken)
    await provider.request_one_shot_fix("u1")


async def test_redis_outage_is_location_unavailable(provider, fake_redis):
    fake_redis.down = True
    with pytest.raises(LocationUnavailable):
        await provider.has_permission("u1")
    with pytest.raises(LocationUnavailable):
        await provider.current_fix("u1")
