"""Shared test fixtures and helpers."""

from typing import Optional

import pytest

from src.calls.orchestrator import CallOrchestrator
from src.calls.session_store import SessionStore
from src.schemas.call_schema import MedicationRequest, RecordingInfo
from src.schemas.event_schema import CallEvent
from src.storage.json_store import JsonCollection
from src.tools import pickup
from src.tools.directory import SEED_PHARMACIES, PharmacyDirectory
from src.tools.telephony import SimulatedTelephonyProvider


@pytest.fixture(autouse=True)
def _reset_pickups():
    pickup.reset()
    yield
    pickup.reset()


@pytest.fixture
def pharmacies_path(tmp_path):
    return str(tmp_path / "pharmacies.json")


@pytest.fixture
def sessions_path(tmp_path):
    return str(tmp_path / "call_logs.json")


@pytest.fixture
def directory(pharmacies_path):
    return PharmacyDirectory(JsonCollection(pharmacies_path), seed=SEED_PHARMACIES)


@pytest.fixture
def store(sessions_path):
    return SessionStore(JsonCollection(sessions_path))


@pytest.fixture
def provider():
    # Events are delivered by hand in tests.
    return SimulatedTelephonyProvider(delay_sec=0, auto_events=False)


@pytest.fixture
def orchestrator(directory, store, provider):
    return CallOrchestrator(directory, store, provider, estimated_wait="2-5 minutes")


def make_request(
    medication_name: str = "Lisinopril",
    dosage: Optional[str] = "10mg",
    quantity: Optional[str] = "30 tablets",
) -> MedicationRequest:
    """Helper to create a MedicationRequest."""
    return MedicationRequest(medication_name=medication_name, dosage=dosage, quantity=quantity)


def status_event(call_id: str, status: str) -> CallEvent:
    return CallEvent.status_change(call_id, status)


def recording_event(call_id: str, recording_id: str = "RE123") -> CallEvent:
    return CallEvent.recording_ready(
        call_id, RecordingInfo(id=recording_id, url="https://example.com/rec", duration_seconds=20),
    )


def transcription_event(call_id: str, text: Optional[str], status: str = "completed") -> CallEvent:
    return CallEvent.transcription(call_id, status, text)
