from __future__ import annotations
import logging
import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..deps import get_claims, get_checkin_service, get_event_client
from ..core.config import get_settings
from ..core.nats import publish_checkin, publish_checkout
from ..core.redis import allow_request
from ..exceptions import (
    AlreadyCheckedIn, AttendeeLookupError, CheckInError, EventNotFound, LocationUnavailable, NoActiveCheckIn,
    OutOfRange, PermissionRequired, StoreError,
)
from ..schemas import CheckInCount, CheckInRecord, CheckInRejected, CheckInStatus, Profile
from ..services.checkin_service import CheckInService
from ..services.clients import HttpEventClient

logger = logging.getLogger(__name__)
settings = get_settings()
router = APIRouter(prefix="/checkins", tags=["checkins"])

_STATUS = {
    PermissionRequired: status.HTTP_403_FORBIDDEN,
    LocationUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
    OutOfRange: status.HTTP_422_UNPROCESSABLE_ENTITY,
    AlreadyCheckedIn: status.HTTP_409_CONFLICT,
    NoActiveCheckIn: status.HTTP_404_NOT_FOUND,
    EventNotFound: status.HTTP_404_NOT_FOUND,
    StoreError: status.HTTP_503_SERVICE_UNAVAILABLE,
    AttendeeLookupError: status.HTTP_502_BAD_GATEWAY,
}

def _to_http(err: CheckInError) -> HTTPException:
    code = next((c for t, c in _STATUS.items() if isinstance(err, t)), status.HTTP_400_BAD_REQUEST)
    body = CheckInRejected(code=err.code, detail=str(err))
    if isinstance(err, OutOfRange):
        body.distance_m = round(err.distance_m, 1)
        body.distance = err.formatted_distance
    headers = {"Retry-After": str(int(settings.checkin_retry_delay_seconds) or 1)} if code == 503 else None
    return HTTPException(status_code=code, detail=body.model_dump(exclude_none=True), headers=headers)

def _require_organiser(claims: dict):
    if claims.get("role") != "organiser":
        raise HTTPException(status_code=403, detail="Organiser role required")

async def _announce(publish, record: CheckInRecord, at):
    try:
        await publish({
            "event_id": record.event_id,
            "user_id": record.user_id,
            "checkin_id": record.id,
            "checked_at": at.isoformat(),
            "idempotency_key": f"{record.event_id}:{record.user_id}",
        })
    except Exception:
        # non-fatal for the HTTP response
        logger.warning("could not publish check-in event for %s", record.id, exc_info=True)

# --- 1) Attendee checks in from their device (geofenced)
@router.post("/events/{event_id}", response_model=CheckInRecord, status_code=201)
async def check_in_here(
    event_id: str,
    claims: dict = Depends(get_claims),
    events: HttpEventClient = Depends(get_event_client),
    svc: CheckInService = Depends(get_checkin_service),
):
    user_id = claims["sub"]
    if not await allow_request(user_id, "checkin.create"):
        raise HTTPException(status_code=429, detail="Too many requests")
    try:
        event = await events.get_location(event_id)
        record = await svc.check_in_with_location_validation(user_id, event_id, event)
    except CheckInError as e:
        raise _to_http(e)
    except httpx.HTTPError:
        logger.warning("event lookup failed for %s", event_id, exc_info=True)
        raise HTTPException(status_code=502, detail="Event service unavailable")
    await _announce(publish_checkin, record, record.checked_in_at)
    return record

# --- 2) Organiser checks someone in at the door (no geofence)
@router.post("/events/{event_id}/users/{user_id}", response_model=CheckInRecord, status_code=201)
async def check_in_user(
    event_id: str,
    user_id: str,
    claims: dict = Depends(get_claims),
    svc: CheckInService = Depends(get_checkin_service),
):
    _require_organiser(claims)
    try:
        record = await svc.check_in(user_id, event_id)
    except CheckInError as e:
        raise _to_http(e)
    await _announce(publish_checkin, record, record.checked_in_at)
    return record

# --- 3) Attendee leaves
@router.delete("/events/{event_id}", response_model=CheckInRecord)
async def check_out(event_id: str, claims: dict = Depends(get_claims), svc: CheckInService = Depends(get_checkin_service)):
    try:
        record = await svc.check_out(claims["sub"], event_id)
    except CheckInError as e:
        raise _to_http(e)
    await _announce(publish_checkout, record, record.checked_out_at)
    return record

@router.get("/events/{event_id}/me", response_model=CheckInStatus)
async def my_status(event_id: str, claims: dict = Depends(get_claims), svc: CheckInService = Depends(get_checkin_service)):
    try:
        checked_in = await svc.is_checked_in(claims["sub"], event_id)
    except CheckInError as e:
        raise _to_http(e)
    return CheckInStatus(event_id=event_id, user_id=claims["sub"], checked_in=checked_in)

@router.get("/events/{event_id}/count", response_model=CheckInCount)
async def count(event_id: str, claims: dict = Depends(get_claims), svc: CheckInService = Depends(get_checkin_service)):
    try:
        n = await svc.get_check_in_count(event_id)
    except CheckInError as e:
        raise _to_http(e)
    return CheckInCount(event_id=event_id, count=n)

@router.get("/events/{event_id}/attendees", response_model=list[Profile])
async def attendees(event_id: str, claims: dict = Depends(get_claims), svc: CheckInService = Depends(get_checkin_service)):
    try:
        return await svc.get_attendees(event_id)
    except CheckInError as e:
        raise _to_http(e)

# --- 4) Organiser roster
@router.get("/events/{event_id}/roster", response_model=list[CheckInRecord])
async def roster(
    event_id: str,
    limit: int = Query(settings.roster_limit, ge=1, le=200),
    claims: dict = Depends(get_claims),
    svc: CheckInService = Depends(get_checkin_service),
):
    _require_organiser(claims)
    try:
        return await svc.get_roster(event_id, limit=limit)
    except CheckInError as e:
        raise _to_http(e)
