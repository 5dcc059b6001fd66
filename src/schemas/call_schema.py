"""Call session, medication request, and availability verdict models."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CallState(str, Enum):
    """Lifecycle states of an outbound pharmacy call."""
    INITIATED = "initiated"
    RINGING = "ringing"
    ANSWERED = "answered"
    RECORDING = "recording"
    TRANSCRIBING = "transcribing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATES = frozenset({CallState.COMPLETED, CallState.FAILED})


class Confidence(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PatientInfo(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    insurance_info: Optional[str] = None


class MedicationRequest(BaseModel):
    """What the pharmacy is asked about. Immutable once a call is placed."""
    model_config = ConfigDict(frozen=True)

    medication_name: str = Field(min_length=1)
    dosage: Optional[str] = None
    quantity: Optional[str] = None
    patient_info: Optional[PatientInfo] = None


class RecordingInfo(BaseModel):
    id: str
    url: str = ""
    duration_seconds: Optional[int] = None


class AvailabilityVerdict(BaseModel):
    """Structured availability judgment derived from a transcript."""
    medication_found: bool
    available: bool
    confidence: Confidence
    quantity: str = "unknown"
    price: Optional[Decimal] = None


class StateChange(BaseModel):
    """Recorded history entry for a state visit."""
    state: CallState
    entered_at: datetime
    trigger: Optional[str] = None


class CallSession(BaseModel):
    """The stateful record of one outbound call, keyed by provider call id."""
    id: str
    destination_id: str
    destination_name: str = ""
    request: MedicationRequest
    state: CallState = CallState.INITIATED
    recording: Optional[RecordingInfo] = None
    transcript: Optional[str] = None
    verdict: Optional[AvailabilityVerdict] = None
    failure_reason: Optional[str] = None
    simulated: bool = False
    created_at: datetime
    last_updated_at: datetime
    history: list[StateChange] = Field(default_factory=list)
    applied_events: list[str] = Field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def state_trace(self) -> list[str]:
        """Ordered list of state names visited."""
        return [entry.state.value for entry in self.history]


class CheckInitiated(BaseModel):
    """Immediate result of placing a check call."""
    session_id: str
    destination_name: str
    estimated_wait: str
    simulated: bool = False


class StatusReport(BaseModel):
    """Read-path view of a session for pollers."""
    session_id: str
    found: bool
    state: Optional[CallState] = None
    destination_name: str = ""
    medication_name: str = ""
    verdict: Optional[AvailabilityVerdict] = None
    recording: Optional[RecordingInfo] = None
    transcript: Optional[str] = None
    provider_status: Optional[str] = None
    duration_seconds: Optional[int] = None
    error: Optional[str] = None
    message: str = ""
