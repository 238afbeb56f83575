from __future__ import annotations
from typing import Any

from .core.geo import format_distance


class CheckInError(Exception):
    """Base for every failure the check-in service reports to its callers."""

    code = "checkin_error"
    message = "Check-in failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)


class PermissionRequired(CheckInError):
    code = "permission_required"
    message = "Location access is required to check in to events"


class LocationUnavailable(CheckInError):
    code = "location_unavailable"
    message = "Could not determine your location, please try again"


class OutOfRange(CheckInError):
    code = "out_of_range"

    def __init__(self, distance_m: float, radius_m: float):
        self.distance_m = distance_m
        self.radius_m = radius_m
        self.formatted_distance = format_distance(distance_m)
        super().__init__(
            f"You are {self.formatted_distance} away; check-in is allowed within {format_distance(radius_m)}"
        )


class AlreadyCheckedIn(CheckInError):
    code = "already_checked_in"

    def __init__(self, user_id: str, event_id: str):
        self.user_id = user_id
        self.event_id = event_id
        super().__init__("Already checked in to this event")


class NoActiveCheckIn(CheckInError):
    code = "no_active_checkin"

    def __init__(self, user_id: str, event_id: str):
        self.user_id = user_id
        self.event_id = event_id
        super().__init__("Not checked in to this event")


class StoreError(CheckInError):
    code = "store_error"
    message = "Check-in storage is unavailable"

    def __init__(self, message: str | None = None, cause: BaseException | None = None):
        self.cause = cause
        super().__init__(message)


class DocumentConflict(StoreError):
    """A write was refused by a uniqueness rule in the store."""

    code = "document_conflict"

    def __init__(self, collection: str, record: dict[str, Any], cause: BaseException | None = None):
        self.collection = collection
        self.record = record
        super().__init__(f"conflicting document in {collection}", cause=cause)


class ProfileNotFound(CheckInError):
    code = "profile_not_found"

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"profile {user_id} not found")


class EventNotFound(CheckInError):
    code = "event_not_found"

    def __init__(self, event_id: str):
        self.event_id = event_id
        super().__init__(f"event {event_id} not found")


class AttendeeLookupError(CheckInError):
    code = "attendee_lookup_failed"

    def __init__(self, profiles: list, failures: dict[str, Exception]):
        self.profiles = profiles
        self.failures = failures
        super().__init__(f"{len(failures)} attendee profile lookup(s) failed")
