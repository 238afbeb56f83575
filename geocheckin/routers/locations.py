from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException
import redis.asyncio as redis

from ..deps import get_claims, get_location_provider
from ..schemas import FixReport, LocationFix, PermissionUpdate
from ..services.location import RedisLocationProvider

router = APIRouter(prefix="/locations", tags=["locations"])

# Devices report permission changes and one-shot fixes here; the gate reads them back.

@router.put("/me/permission", status_code=204)
async def report_permission(
    payload: PermissionUpdate,
    claims: dict = Depends(get_claims),
    locations: RedisLocationProvider = Depends(get_location_provider),
):
    try:
        await locations.set_permission(claims["sub"], payload.granted)
    except redis.RedisError:
        raise HTTPException(status_code=503, detail="Location cache unavailable")

@router.post("/me/fix", response_model=LocationFix, status_code=201)
async def report_fix(
    payload: FixReport,
    claims: dict = Depends(get_claims),
    locations: RedisLocationProvider = Depends(get_location_provider),
):
    fix = payload.to_fix()
    try:
        await locations.record_fix(claims["sub"], fix)
    except redis.RedisError:
        raise HTTPException(status_code=503, detail="Location cache unavailable")
    return fix
