from __future__ import annotations
from typing import Literal
from pydantic_settings import BaseSettings
from pydantic import Field

class Settings(BaseSettings):
    database_url: str = Field(..., alias="DATABASE_URL")

    auth_jwks_url: str = Field(..., alias="AUTH_JWKS_URL")
    token_issuer: str = Field("authentication-svc", alias="TOKEN_ISSUER")

    # Upstream services (profiles + events live elsewhere)
    profiles_base_url: str = Field("http://localhost:8005", alias="PROFILES_BASE_URL")
    events_base_url: str = Field("http://localhost:8006", alias="EVENTS_BASE_URL")
    upstream_timeout_seconds: float = Field(5.0, alias="UPSTREAM_TIMEOUT_SECONDS")

    # Redis
    redis_url: str = Field("redis://127.0.0.1:6379/0", alias="REDIS_URL")
    rl_enabled: bool = Field(default=True, alias="RL_ENABLED")
    rl_window_seconds: int = Field(default=60, alias="RL_WINDOW_SECONDS")
    rl_max_reqs: int = Field(default=30, alias="RL_MAX_REQS")
    # how long a reported fix stays usable before the device must send a new one
    location_fix_ttl_seconds: int = Field(default=120, alias="LOCATION_FIX_TTL_SECONDS")

    # NATS
    nats_urls: str = Field("nats://127.0.0.1:4222", alias="NATS_URLS")
    nats_subject_checkin: str = Field("checkins.recorded", alias="NATS_SUBJECT_CHECKIN")
    nats_subject_checkout: str = Field("checkins.closed", alias="NATS_SUBJECT_CHECKOUT")
    nats_subject_fix_request: str = Field("locations.fix.requested", alias="NATS_SUBJECT_FIX_REQUEST")

    # Admission (geofence) policy; 1609.34 m == 1 mile
    checkin_radius_m: float = Field(default=1609.34, gt=0, alias="CHECKIN_RADIUS_M")
    checkin_max_retries: int = Field(default=1, ge=1, alias="CHECKIN_MAX_RETRIES")
    checkin_retry_delay_seconds: float = Field(default=2.0, ge=0, alias="CHECKIN_RETRY_DELAY_SECONDS")
    checkin_retry_backoff: float = Field(default=1.0, ge=1.0, alias="CHECKIN_RETRY_BACKOFF")
    checkin_max_fix_age_seconds: float | None = Field(default=None, alias="CHECKIN_MAX_FIX_AGE_SECONDS")
    checkin_admission_timeout_seconds: float | None = Field(default=15.0, alias="CHECKIN_ADMISSION_TIMEOUT_SECONDS")

    # legacy behaviour: store errors on "am I checked in?" read as False
    checkin_lenient_status_reads: bool = Field(default=False, alias="CHECKIN_LENIENT_STATUS_READS")

    # Attendees
    attendee_lookup_policy: Literal["skip", "collect"] = Field("skip", alias="ATTENDEE_LOOKUP_POLICY")
    attendee_max_concurrency: int | None = Field(default=20, alias="ATTENDEE_MAX_CONCURRENCY")
    roster_limit: int = Field(default=50, ge=1, alias="ROSTER_LIMIT")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    class Config:
        env_file = ".env"
        env_prefix = ""
        case_sensitive = False

_settings: Settings | None = None
def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
