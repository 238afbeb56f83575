from __future__ import annotations
import asyncio
import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable
from prometheus_client import Counter

from ..core.config import Settings
from ..core.geo import METERS_PER_MILE, distance
from ..exceptions import CheckInError, LocationUnavailable, OutOfRange, PermissionRequired
from ..schemas import EventLocation, LocationFix
from .location import LocationProvider

logger = logging.getLogger(__name__)

ADMISSION_DECISIONS = Counter(
    "checkin_admission_decisions_total",
    "Geofence admission decisions by outcome",
    ["outcome"],
)

class GateState(str, enum.Enum):
    START = "start"
    CHECKING_PERMISSION = "checking_permission"
    AWAITING_FIX = "awaiting_fix"
    RETRY_SCHEDULED = "retry_scheduled"
    VALIDATING = "validating"
    ADMITTED = "admitted"
    REJECTED = "rejected"

@dataclass(frozen=True)
class AdmissionPolicy:
    radius_m: float = METERS_PER_MILE
    max_retries: int = 1
    retry_delay: float = 2.0
    backoff: float = 1.0
    max_fix_age: float | None = None  # seconds

    def __post_init__(self):
        if self.max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        if self.radius_m <= 0:
            raise ValueError("radius_m must be positive")

    def delay_for(self, retry: int) -> float:
        return self.retry_delay * (self.backoff ** retry)

    @classmethod
    def from_settings(cls, settings: Settings) -> "AdmissionPolicy":
        return cls(
            radius_m=settings.checkin_radius_m,
            max_retries=settings.checkin_max_retries,
            retry_delay=settings.checkin_retry_delay_seconds,
            backoff=settings.checkin_retry_backoff,
            max_fix_age=settings.checkin_max_fix_age_seconds,
        )

@dataclass
class AdmissionDecision:
    state: GateState
    reason: CheckInError | None = None
    distance_m: float | None = None
    retries: int = 0
    trail: list[GateState] = field(default_factory=list)

    @property
    def admitted(self) -> bool:
        return self.state is GateState.ADMITTED


class AdmissionController:
    """Decides whether a user is close enough to an event to check in.

    permission -> (no event coordinates: admit) -> fix -> distance <= radius.
    A missing fix triggers a one-shot fix request and a delayed retry of the whole
    check, up to ``policy.max_retries`` times. The delay is an ``asyncio.sleep`` so
    cancelling the caller cancels the pending retry. Nothing is written.
    """

    def __init__(
        self,
        provider: LocationProvider,
        policy: AdmissionPolicy | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.provider = provider
        self.policy = policy or AdmissionPolicy()
        self._sleep = sleep
        self._clock = clock

    async def validate(self, user_id: str, event: EventLocation) -> AdmissionDecision:
        trail = [GateState.START]
        retries = 0
        while True:
            trail.append(GateState.CHECKING_PERMISSION)
            if not await self.provider.has_permission(user_id):
                return self._reject(PermissionRequired(), trail, retries)

            # events without a known location cannot be geofenced
            if event.coordinates is None:
                return self._admit(None, trail, retries)

            trail.append(GateState.AWAITING_FIX)
            fix = await self._fresh_fix(user_id)
            if fix is None:
                await self.provider.request_one_shot_fix(user_id)
                if retries >= self.policy.max_retries:
                    return self._reject(LocationUnavailable(), trail, retries)
                delay = self.policy.delay_for(retries)
                trail.append(GateState.RETRY_SCHEDULED)
                logger.debug("no fix for user=%s, retrying in %.1fs", user_id, delay)
                await self._sleep(delay)
                retries += 1
                continue

            trail.append(GateState.VALIDATING)
            d = distance(fix.coordinates, event.coordinates)
            logger.debug("user=%s event=%s distance=%.0fm", user_id, event.event_id, d)
            if d <= self.policy.radius_m:
                return self._admit(d, trail, retries)
            return self._reject(OutOfRange(d, self.policy.radius_m), trail, retries, d)

    async def _fresh_fix(self, user_id: str) -> LocationFix | None:
        fix = await self.provider.current_fix(user_id)
        if fix is None or self.policy.max_fix_age is None:
            return fix
        captured = fix.captured_at
        if captured.tzinfo is None:
            captured = captured.replace(tzinfo=timezone.utc)
        age = (self._clock() - captured).total_seconds()
        if age > self.policy.max_fix_age:
            logger.debug("ignoring %.0fs old fix for user=%s", age, user_id)
            return None
        return fix

    def _admit(self, d: float | None, trail: list[GateState], retries: int) -> AdmissionDecision:
        trail.append(GateState.ADMITTED)
        ADMISSION_DECISIONS.labels(outcome="admitted").inc()
        return AdmissionDecision(GateState.ADMITTED, distance_m=d, retries=retries, trail=trail)

    def _reject(
        self, reason: CheckInError, trail: list[GateState], retries: int, d: float | None = None
    ) -> AdmissionDecision:
        trail.append(GateState.REJECTED)
        ADMISSION_DECISIONS.labels(outcome=reason.code).inc()
        logger.info("check-in rejected: %s", reason.code)
        return AdmissionDecision(GateState.REJECTED, reason=reason, distance_m=d, retries=retries, trail=trail)
