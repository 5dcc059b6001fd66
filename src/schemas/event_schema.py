"""Internal event vocabulary delivered from webhook ingress to the orchestrator."""

import hashlib
import json
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from src.schemas.call_schema import CallState, RecordingInfo
from src.utils import utc_now


class EventKind(str, Enum):
    STATUS = "status"
    RECORDING = "recording"
    TRANSCRIPTION = "transcription"


class CallEvent(BaseModel):
    """A normalized provider callback for one call."""

    kind: EventKind
    provider_call_id: str = Field(min_length=1)
    status: Optional[str] = None
    recording: Optional[RecordingInfo] = None
    text: Optional[str] = None
    received_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def status_change(cls, provider_call_id: str, status: str) -> "CallEvent":
        return cls(kind=EventKind.STATUS, provider_call_id=provider_call_id,
                   status=status.strip().lower())

    @classmethod
    def recording_ready(cls, provider_call_id: str, recording: RecordingInfo) -> "CallEvent":
        return cls(kind=EventKind.RECORDING, provider_call_id=provider_call_id,
                   recording=recording)

    @classmethod
    def transcription(
        cls, provider_call_id: str, status: str, text: Optional[str] = None
    ) -> "CallEvent":
        return cls(kind=EventKind.TRANSCRIPTION, provider_call_id=provider_call_id,
                   status=status.strip().lower(), text=text)

    def fingerprint(self) -> str:
        """Content hash used to recognize redelivered events. Ignores arrival time."""
        content = self.model_dump(mode="json", exclude={"received_at"})
        encoded = json.dumps(content, sort_keys=True).encode("utf-8")
        return hashlib.sha256(encoded).hexdigest()


class EventOutcome(str, Enum):
    """How the orchestrator disposed of an event."""
    APPLIED = "applied"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"


class EventResult(BaseModel):
    outcome: EventOutcome
    session_id: str
    state: Optional[CallState] = None
    message: str = ""
