"""
Call orchestrator: owner of every pharmacy call session.

Places check calls through the telephony provider, correlates the
asynchronous provider events back to their session, drives the session
state machine, classifies the final transcript, and pushes the verdict
into the pharmacy directory's inventory view.

All mutations of one session run under that session's asyncio lock, so
webhook deliveries racing each other (or a status poll) for the same
call are applied one at a time. Different sessions never wait on each
other.

Store and directory access runs in a worker thread so file I/O never
blocks the event loop.
"""

import asyncio
import weakref
from typing import Optional

from src.calls.errors import DestinationNotFoundError, UpstreamFailureError
from src.calls.session_store import SessionStore
from src.calls.state_machine import (
    CallStateMachine,
    CallTrigger,
    InvalidTransitionError,
    Transition,
    is_recognized_status,
    trigger_for_event,
)
from src.logging_context import call_context, get_call_logger
from src.schemas.call_schema import (
    CallSession,
    CallState,
    CheckInitiated,
    MedicationRequest,
    StateChange,
    StatusReport,
)
from src.schemas.event_schema import CallEvent, EventKind, EventOutcome, EventResult
from src.schemas.pharmacy_schema import AvailabilityRecord
from src.tools.classifier import classify_response
from src.tools.directory import PharmacyDirectory
from src.tools.telephony import CALL_FAILURE_STATUSES, TelephonyError, TelephonyProvider
from src.tools.voice_script import ScriptParams
from src.utils import strictly_after, utc_now

logger = get_call_logger(__name__)


class CallOrchestrator:
    """State-machine owner for outbound pharmacy check calls."""

    def __init__(
        self,
        directory: PharmacyDirectory,
        store: SessionStore,
        provider: TelephonyProvider,
        estimated_wait: str = "2-5 minutes",
    ) -> None:
        self.directory = directory
        self.store = store
        self.provider = provider
        self.estimated_wait = estimated_wait
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()
        provider.bind_event_sink(self.handle_event)

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    # ------------------------------------------------------------------ #
    # Placement
    # ------------------------------------------------------------------ #

    async def initiate_check(self, destination_id: str, request: MedicationRequest) -> CheckInitiated:
        """
        Place a check call and register its session. Returns without waiting for the call.

        Raises:
            DestinationNotFoundError: If the pharmacy is not in the directory.
            UpstreamFailureError: If the provider could not place the call.
            PersistenceError: If the new session could not be stored.
        """
        pharmacy = await asyncio.to_thread(self.directory.get, destination_id)
        if pharmacy is None:
            raise DestinationNotFoundError(destination_id)

        try:
            placed = await self.provider.place_call(pharmacy.phone, ScriptParams.from_request(request))
        except TelephonyError as exc:
            logger.error("Error calling pharmacy %s: %s", pharmacy.name, exc)
            raise UpstreamFailureError(f"Failed to initiate call to {pharmacy.name}: {exc}") from exc

        now = utc_now()
        session = CallSession(
            id=placed.provider_call_id,
            destination_id=pharmacy.id,
            destination_name=pharmacy.name,
            request=request,
            state=CallState.INITIATED,
            simulated=placed.simulated,
            created_at=now,
            last_updated_at=now,
            history=[StateChange(state=CallState.INITIATED, entered_at=now)],
        )
        with call_context(session.id):
            await asyncio.to_thread(self.store.create, session)
            logger.info(
                "Check call placed to %s for %s", pharmacy.name, request.medication_name,
            )

        return CheckInitiated(
            session_id=session.id,
            destination_name=pharmacy.name,
            estimated_wait=self.estimated_wait,
            simulated=placed.simulated,
        )

    # ------------------------------------------------------------------ #
    # Event handling
    # ------------------------------------------------------------------ #

    async def handle_event(self, event: CallEvent) -> EventResult:
        """Apply one provider event to its session."""
        with call_context(event.provider_call_id):
            async with self._lock_for(event.provider_call_id):
                return await asyncio.to_thread(self._apply_event, event)

    def _apply_event(self, event: CallEvent) -> EventResult:
        session_id = event.provider_call_id
        session = self.store.get(session_id)
        if session is None:
            logger.warning("%s event for unknown call ignored", event.kind.value)
            return EventResult(
                outcome=EventOutcome.NOT_FOUND, session_id=session_id, message="Session not found",
            )

        fingerprint = event.fingerprint()
        if fingerprint in session.applied_events:
            logger.info("Duplicate %s event acknowledged", event.kind.value)
            return EventResult(
                outcome=EventOutcome.DUPLICATE, session_id=session_id, state=session.state,
                message="Event already applied",
            )

        trigger = trigger_for_event(event)
        if trigger is None:
            if event.kind == EventKind.STATUS and is_recognized_status(event.status):
                logger.debug("Status '%s' does not change state", event.status)
            else:
                logger.warning(
                    "Unrecognized %s event value %r ignored", event.kind.value, event.status,
                )
            return EventResult(
                outcome=EventOutcome.IGNORED, session_id=session_id, state=session.state,
                message=f"No state change for {event.kind.value} '{event.status}'",
            )

        try:
            path = CallStateMachine(session.state).transition(trigger)
        except InvalidTransitionError as exc:
            logger.warning("Rejected %s event: %s", event.kind.value, exc)
            return EventResult(
                outcome=EventOutcome.INVALID_TRANSITION, session_id=session_id,
                state=session.state, message=str(exc),
            )

        updated = self.store.update(session_id, **self._changes_for(session, event, path, fingerprint))
        if updated is None:
            return EventResult(
                outcome=EventOutcome.NOT_FOUND, session_id=session_id, message="Session not found",
            )

        logger.info(
            "Session %s: %s", session_id,
            " -> ".join([session.state.value] + [t.to_state.value for t in path]),
        )
        if updated.verdict is not None:
            self._record_availability(updated)

        return EventResult(
            outcome=EventOutcome.APPLIED, session_id=session_id, state=updated.state,
            message=f"Moved to {updated.state.value}",
        )

    def _changes_for(
        self, session: CallSession, event: CallEvent, path: list[Transition], fingerprint: str,
    ) -> dict:
        timestamp = session.last_updated_at
        history = list(session.history)
        for t in path:
            timestamp = strictly_after(timestamp)
            history.append(StateChange(state=t.to_state, entered_at=timestamp, trigger=t.trigger.value))

        changes: dict = {
            "state": path[-1].to_state,
            "last_updated_at": timestamp,
            "history": history,
            "applied_events": session.applied_events + [fingerprint],
        }
        if event.recording is not None:
            changes["recording"] = event.recording

        final = path[-1].trigger
        if final == CallTrigger.TRANSCRIPTION_COMPLETED:
            # Verdict and COMPLETED land in the same write.
            verdict = classify_response(event.text)
            changes["transcript"] = event.text
            changes["verdict"] = verdict if verdict.medication_found else None
            if not verdict.medication_found:
                logger.info("Transcript gave no availability signal")
        elif final == CallTrigger.TRANSCRIPTION_FAILED:
            changes["failure_reason"] = "transcription unavailable"
        elif final == CallTrigger.CALL_FAILED:
            changes["failure_reason"] = f"call {event.status}"
        return changes

    def _record_availability(self, session: CallSession) -> None:
        verdict = session.verdict
        record = AvailabilityRecord(
            available=verdict.available,
            quantity=verdict.quantity or "unknown",
            price=verdict.price,
            last_checked=session.last_updated_at,
        )
        found = self.directory.apply_availability(
            session.destination_id, session.request.medication_name, record,
        )
        if not found:
            logger.warning(
                "Pharmacy %s is no longer in the directory; verdict kept on the session only",
                session.destination_id,
            )

    # ------------------------------------------------------------------ #
    # Read path
    # ------------------------------------------------------------------ #

    async def get_status(self, session_id: str, refresh: bool = False) -> StatusReport:
        """
        Report a session's progress.

        With ``refresh`` the provider is asked for live call details; a
        provider-side failure marks the session FAILED, and a provider
        error is returned in ``error`` rather than raised.
        """
        with call_context(session_id):
            async with self._lock_for(session_id):
                session = await asyncio.to_thread(self.store.get, session_id)
                if session is None:
                    return StatusReport(session_id=session_id, found=False, message="Call ID not found")
                if not refresh:
                    return self._report(session)

                try:
                    details = await self.provider.fetch_call_and_recordings(session_id)
                except TelephonyError as exc:
                    logger.error("Status refresh failed: %s", exc)
                    return self._report(session).model_copy(update={
                        "error": str(exc), "message": "Failed to check call status",
                    })

                if details.status in CALL_FAILURE_STATUSES and not session.is_terminal:
                    await asyncio.to_thread(
                        self._apply_event, CallEvent.status_change(session_id, details.status),
                    )
                    session = await asyncio.to_thread(self.store.get, session_id) or session

                report = self._report(session)
                provider_transcript = next(
                    (r.transcript_text for r in details.recordings if r.transcript_text), None,
                )
                return report.model_copy(update={
                    "provider_status": details.status,
                    "duration_seconds": details.duration_seconds,
                    "transcript": report.transcript or provider_transcript,
                })

    def _report(self, session: CallSession) -> StatusReport:
        if session.state == CallState.COMPLETED:
            message = "Call completed. Check verdict for details."
        elif session.state == CallState.FAILED:
            message = f"Call failed: {session.failure_reason or 'unknown reason'}"
        else:
            message = f"Call status: {session.state.value}"
        return StatusReport(
            session_id=session.id,
            found=True,
            state=session.state,
            destination_name=session.destination_name,
            medication_name=session.request.medication_name,
            verdict=session.verdict,
            recording=session.recording,
            transcript=session.transcript,
            message=message,
        )

    # ------------------------------------------------------------------ #
    # Administrative access
    # ------------------------------------------------------------------ #

    def get_session(self, session_id: str) -> Optional[CallSession]:
        return self.store.get(session_id)

    def list_sessions(self, state: Optional[CallState] = None) -> list[CallSession]:
        if state is None:
            return self.store.list_all()
        return self.store.list_by_state(state)

    def purge_sessions(self, days: int) -> int:
        return self.store.purge_older_than(days)
