from __future__ import annotations
from typing import Any, Dict
from fastapi import Depends, Header, HTTPException, status
import time
import httpx
import jwt

from .db import async_session_maker
from .core.config import get_settings
from .core.nats import publish_fix_request
from .core.redis import get_redis
from .services.admission import AdmissionController, AdmissionPolicy
from .services.attendees import AttendeeAggregator
from .services.checkin_service import CheckInService
from .services.checkins import CheckInStore
from .services.clients import HttpEventClient, HttpProfileClient
from .services.documents import SqlDocumentStore
from .services.location import RedisLocationProvider

settings = get_settings()

_JWKS: Dict[str, Any] | None = None
_JWKS_TS: float = 0.0
_JWKS_TTL: int = 3600

async def fetch_jwks() -> Dict[str, Any]:
    global _JWKS, _JWKS_TS
    now = time.time()
    if _JWKS is None or (now - _JWKS_TS) > _JWKS_TTL:
        async with httpx.AsyncClient() as client:
            r = await client.get(settings.auth_jwks_url, timeout=5.0)
            r.raise_for_status()
            _JWKS = r.json()
            _JWKS_TS = now
    return _JWKS

async def get_signing_key():
    from jwt.algorithms import RSAAlgorithm
    jwks = await fetch_jwks()
    key = jwks["keys"][0]
    return RSAAlgorithm.from_jwk(key)

def bearer_token(authorization: str | None = Header(default=None)) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
    return authorization.split(" ", 1)[1].strip()

async def get_claims(token: str = Depends(bearer_token)) -> Dict[str, Any]:
    key = await get_signing_key()
    try:
        payload = jwt.decode(token, key=key, algorithms=["RS256"], options={"verify_aud": False})
    except jwt.PyJWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    if "sub" not in payload or "role" not in payload:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")
    return payload

# --- shared collaborators ---

_documents: SqlDocumentStore | None = None
_locations: RedisLocationProvider | None = None

def get_document_store() -> SqlDocumentStore:
    global _documents
    if _documents is None:
        _documents = SqlDocumentStore(async_session_maker)
    return _documents

def get_location_provider() -> RedisLocationProvider:
    global _locations
    if _locations is None:
        _locations = RedisLocationProvider(
            get_redis(),
            fix_ttl_seconds=settings.location_fix_ttl_seconds,
            publish_request=publish_fix_request,
        )
    return _locations

# --- outbound clients (caller's token is forwarded) ---

def get_event_client(token: str = Depends(bearer_token)) -> HttpEventClient:
    return HttpEventClient(settings.events_base_url, token=token, timeout=settings.upstream_timeout_seconds)

def get_profile_client(token: str = Depends(bearer_token)) -> HttpProfileClient:
    return HttpProfileClient(settings.profiles_base_url, token=token, timeout=settings.upstream_timeout_seconds)

def get_checkin_service(
    profiles: HttpProfileClient = Depends(get_profile_client),
    documents: SqlDocumentStore = Depends(get_document_store),
    locations: RedisLocationProvider = Depends(get_location_provider),
) -> CheckInService:
    return CheckInService(
        CheckInStore(documents),
        AttendeeAggregator(
            profiles,
            on_lookup_failure=settings.attendee_lookup_policy,
            max_concurrency=settings.attendee_max_concurrency,
        ),
        AdmissionController(locations, AdmissionPolicy.from_settings(settings)),
        admission_timeout=settings.checkin_admission_timeout_seconds,
        lenient_status_reads=settings.checkin_lenient_status_reads,
    )
