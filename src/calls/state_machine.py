"""
Finite state machine for the pharmacy call lifecycle.

    INITIATED -> RINGING -> ANSWERED -> RECORDING -> TRANSCRIBING -> COMPLETED
         \\_________\\__________\\___________\\______________\\-----> FAILED

Status callbacks only ever take a single, explicitly listed step.
Recording and transcription callbacks carry content that proves the
earlier steps happened, so when the status callbacks for those steps
were lost or are still in flight, the machine walks forward through
the implied states before applying the real transition. Nothing ever
moves backwards, and COMPLETED and FAILED accept no further triggers.

Usage:
    sm = CallStateMachine()
    sm.transition(CallTrigger.RINGING)
    assert sm.current_state == CallState.RINGING
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from src.schemas.call_schema import TERMINAL_STATES, CallState
from src.schemas.event_schema import CallEvent, EventKind

logger = logging.getLogger(__name__)


class CallTrigger(str, Enum):
    """Internal events that cause state transitions."""
    RINGING = "ringing"
    ANSWERED = "answered"
    RECORDING_STARTED = "recording_started"
    TRANSCRIPTION_SUBMITTED = "transcription_submitted"
    TRANSCRIPTION_COMPLETED = "transcription_completed"
    TRANSCRIPTION_FAILED = "transcription_failed"
    CALL_FAILED = "call_failed"


@dataclass(frozen=True)
class Transition:
    """A single valid state transition."""
    from_state: CallState
    to_state: CallState
    trigger: CallTrigger


class InvalidTransitionError(Exception):
    """Raised when a trigger cannot be applied from the current state."""


# Provider status values, as sent in status callbacks.
STATUS_TRIGGERS: dict[str, CallTrigger] = {
    "ringing": CallTrigger.RINGING,
    "in-progress": CallTrigger.ANSWERED,
    "answered": CallTrigger.ANSWERED,
    "busy": CallTrigger.CALL_FAILED,
    "no-answer": CallTrigger.CALL_FAILED,
    "failed": CallTrigger.CALL_FAILED,
    "canceled": CallTrigger.CALL_FAILED,
}
PASSIVE_STATUSES = frozenset({"queued", "initiated", "completed"})
TRANSCRIPTION_PENDING_STATUSES = frozenset({"in-progress", "queued", "submitted"})


def trigger_for_event(event: CallEvent) -> Optional[CallTrigger]:
    """Map a normalized provider event to a trigger, or None if it does not advance state."""
    if event.kind == EventKind.STATUS:
        return STATUS_TRIGGERS.get(event.status or "")
    if event.kind == EventKind.RECORDING:
        return CallTrigger.RECORDING_STARTED
    if event.kind == EventKind.TRANSCRIPTION:
        if event.status == "completed":
            if event.text and event.text.strip():
                return CallTrigger.TRANSCRIPTION_COMPLETED
            return CallTrigger.TRANSCRIPTION_FAILED
        if event.status == "failed":
            return CallTrigger.TRANSCRIPTION_FAILED
        if event.status in TRANSCRIPTION_PENDING_STATUSES:
            return CallTrigger.TRANSCRIPTION_SUBMITTED
    return None


def is_recognized_status(status: Optional[str]) -> bool:
    return status in STATUS_TRIGGERS or status in PASSIVE_STATUSES


class CallStateMachine:
    """
    Deterministic state machine for one call session.

    Built from a session's stored state for each event; the caller
    persists whatever path `transition` returns.
    """

    TRANSITIONS: list[Transition] = [
        # --- Provider progress ---
        Transition(CallState.INITIATED, CallState.RINGING, CallTrigger.RINGING),
        Transition(CallState.RINGING, CallState.ANSWERED, CallTrigger.ANSWERED),
        Transition(CallState.ANSWERED, CallState.RECORDING, CallTrigger.RECORDING_STARTED),
        Transition(CallState.RECORDING, CallState.TRANSCRIBING, CallTrigger.TRANSCRIPTION_SUBMITTED),

        # --- Transcription result ---
        Transition(CallState.TRANSCRIBING, CallState.COMPLETED, CallTrigger.TRANSCRIPTION_COMPLETED),
        Transition(CallState.TRANSCRIBING, CallState.FAILED, CallTrigger.TRANSCRIPTION_FAILED),

        # --- Call failure from any live state ---
        Transition(CallState.INITIATED, CallState.FAILED, CallTrigger.CALL_FAILED),
        Transition(CallState.RINGING, CallState.FAILED, CallTrigger.CALL_FAILED),
        Transition(CallState.ANSWERED, CallState.FAILED, CallTrigger.CALL_FAILED),
        Transition(CallState.RECORDING, CallState.FAILED, CallTrigger.CALL_FAILED),
        Transition(CallState.TRANSCRIBING, CallState.FAILED, CallTrigger.CALL_FAILED),
    ]

    # The step implied by each live state when content arrives ahead of status.
    IMPLIED_STEPS: dict[CallState, CallTrigger] = {
        CallState.INITIATED: CallTrigger.RINGING,
        CallState.RINGING: CallTrigger.ANSWERED,
        CallState.ANSWERED: CallTrigger.RECORDING_STARTED,
        CallState.RECORDING: CallTrigger.TRANSCRIPTION_SUBMITTED,
    }

    FAST_FORWARD_TRIGGERS = frozenset({
        CallTrigger.RECORDING_STARTED,
        CallTrigger.TRANSCRIPTION_SUBMITTED,
        CallTrigger.TRANSCRIPTION_COMPLETED,
        CallTrigger.TRANSCRIPTION_FAILED,
    })

    def __init__(self, state: CallState = CallState.INITIATED) -> None:
        self._current_state = state

    @property
    def current_state(self) -> CallState:
        return self._current_state

    def _find(self, state: CallState, trigger: CallTrigger) -> Optional[Transition]:
        for t in self.TRANSITIONS:
            if t.from_state == state and t.trigger == trigger:
                return t
        return None

    def plan(self, trigger: CallTrigger) -> list[Transition]:
        """
        Work out the transitions `trigger` would cause, without applying them.

        Raises:
            InvalidTransitionError: If no valid path exists.
        """
        direct = self._find(self._current_state, trigger)
        if direct is not None:
            return [direct]

        if trigger in self.FAST_FORWARD_TRIGGERS:
            path: list[Transition] = []
            state = self._current_state
            while state in self.IMPLIED_STEPS:
                step = self._find(state, self.IMPLIED_STEPS[state])
                path.append(step)
                state = step.to_state
                final = self._find(state, trigger)
                if final is not None:
                    return path + [final]

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"No valid transition from '{self._current_state.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def transition(self, trigger: CallTrigger) -> list[Transition]:
        """
        Execute a trigger, walking any implied steps first.

        Returns:
            The transitions taken, in order.

        Raises:
            InvalidTransitionError: If no valid path exists.
        """
        path = self.plan(trigger)
        for t in path:
            logger.debug(
                "State transition: %s -> %s (trigger: %s)",
                t.from_state.value, t.to_state.value, t.trigger.value,
            )
        self._current_state = path[-1].to_state
        return path

    def get_valid_triggers(self) -> list[CallTrigger]:
        """Return all triggers directly valid from the current state."""
        return [t.trigger for t in self.TRANSITIONS if t.from_state == self._current_state]

    def is_terminal(self) -> bool:
        return self._current_state in TERMINAL_STATES
