from __future__ import annotations
import os

# settings are read at import time by several modules
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("AUTH_JWKS_URL", "http://auth.test/.well-known/jwks.json")
os.environ.setdefault("RL_ENABLED", "false")

import pytest

from geocheckin.services.admission import AdmissionController, AdmissionPolicy
from geocheckin.services.attendees import AttendeeAggregator
from geocheckin.services.checkin_service import CheckInService
from geocheckin.services.checkins import CheckInStore

from fakes import FakeLocationProvider, FakeProfileClient, MemoryDocumentStore, SleepRecorder


@pytest.fixture
def documents():
    return MemoryDocumentStore()

@pytest.fixture
def store(documents):
    return CheckInStore(documents)

@pytest.fixture
def locations():
    return FakeLocationProvider()

@pytest.fixture
def profiles():
    return FakeProfileClient()

@pytest.fixture
def sleeper():
    return SleepRecorder()

@pytest.fixture
def gate(locations, sleeper):
    return AdmissionController(locations, AdmissionPolicy(), sleep=sleeper)

@pytest.fixture
def service(store, profiles, gate):
    return CheckInService(store, AttendeeAggregator(profiles), gate)
