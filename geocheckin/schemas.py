from __future__ import annotations
from datetime import datetime, timezone
from typing import Any
from pydantic import BaseModel, ConfigDict, Field, field_validator

# ---- Geo ----
class Coordinates(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)

class LocationFix(BaseModel):
    coordinates: Coordinates
    captured_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

class EventLocation(BaseModel):
    """The slice of an upstream event document needed for geofencing."""
    event_id: str
    coordinates: Coordinates | None = None

    @classmethod
    def from_event_document(cls, doc: dict[str, Any], event_id: str | None = None) -> "EventLocation":
        # malformed coordinates are treated like missing ones
        raw = doc.get("coordinates")
        coords = None
        if isinstance(raw, dict):
            try:
                coords = Coordinates.model_validate(raw)
            except ValueError:
                coords = None
        return cls(event_id=str(event_id or doc.get("id") or ""), coordinates=coords)

# ---- Check-ins ----
class CheckInRecord(BaseModel):
    id: str
    user_id: str
    event_id: str
    is_active: bool
    checked_in_at: datetime
    checked_out_at: datetime | None = None
    updated_at: datetime | None = None

class CheckInStatus(BaseModel):
    event_id: str
    user_id: str
    checked_in: bool

class CheckInCount(BaseModel):
    event_id: str
    count: int

class CheckInRejected(BaseModel):
    code: str
    detail: str
    distance_m: float | None = None
    distance: str | None = None

# ---- Profiles ----
class Profile(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    first_name: str | None = Field(default=None, alias="firstName")
    profile_photo: str | None = Field(default=None, alias="profilePhoto")
    city: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v):
        return str(v)

# ---- Device reports ----
class PermissionUpdate(BaseModel):
    granted: bool

class FixReport(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    captured_at: datetime | None = None

    def to_fix(self) -> LocationFix:
        coords = Coordinates(latitude=self.latitude, longitude=self.longitude)
        if self.captured_at is None:
            return LocationFix(coordinates=coords)
        return LocationFix(coordinates=coords, captured_at=self.captured_at)
