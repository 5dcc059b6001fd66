"""
Webhook ingress: Twilio callback payloads in, orchestrator events out.

Every handler answers the provider synchronously. Business outcomes
(unknown call, duplicate, stale event) are acknowledged with 200 so the
provider does not retry them; only unexpected processing errors produce
a 500, and payloads missing required fields a 400.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from pydantic import ValidationError

from src.calls.orchestrator import CallOrchestrator
from src.schemas.call_schema import RecordingInfo
from src.schemas.event_schema import CallEvent
from src.tools.voice_script import ScriptParams, build_check_script, build_followup_script

logger = logging.getLogger(__name__)

Form = Mapping[str, Any]


class MalformedPayloadError(ValueError):
    """The callback payload is missing required fields."""


@dataclass
class WebhookAck:
    """The synchronous reply owed to the provider."""
    http_status: int
    outcome: str
    session_id: Optional[str] = None
    message: str = ""

    def body(self) -> dict:
        return {
            "status": "ok" if self.http_status == 200 else "error",
            "outcome": self.outcome,
            "sessionId": self.session_id,
            "message": self.message,
        }


def _required(form: Form, name: str) -> str:
    value = str(form.get(name) or "").strip()
    if not value:
        raise MalformedPayloadError(f"Missing required field: {name}")
    return value


def _optional_int(form: Form, name: str) -> Optional[int]:
    raw = form.get(name)
    try:
        return int(raw) if raw not in (None, "") else None
    except (TypeError, ValueError):
        logger.warning("Non-numeric %s %r ignored", name, raw)
        return None


def parse_status(form: Form) -> CallEvent:
    return CallEvent.status_change(_required(form, "CallSid"), _required(form, "CallStatus"))


def parse_recording(form: Form) -> CallEvent:
    recording = RecordingInfo(
        id=_required(form, "RecordingSid"),
        url=str(form.get("RecordingUrl") or ""),
        duration_seconds=_optional_int(form, "RecordingDuration"),
    )
    return CallEvent.recording_ready(_required(form, "CallSid"), recording)


def parse_transcription(form: Form) -> CallEvent:
    return CallEvent.transcription(
        _required(form, "CallSid"),
        _required(form, "TranscriptionStatus"),
        form.get("TranscriptionText") or None,
    )


class WebhookIngress:
    """Normalizes provider callbacks and forwards them to the orchestrator."""

    def __init__(
        self,
        orchestrator: CallOrchestrator,
        webhook_base_url: str,
        record_timeout: int = 30,
        expose_errors: bool = False,
    ) -> None:
        self.orchestrator = orchestrator
        self.webhook_base_url = webhook_base_url.rstrip("/")
        self.record_timeout = record_timeout
        self.expose_errors = expose_errors

    async def receive_status(self, form: Form) -> WebhookAck:
        return await self._receive("status", parse_status, form)

    async def receive_recording(self, form: Form) -> WebhookAck:
        return await self._receive("recording", parse_recording, form)

    async def receive_transcription(self, form: Form) -> WebhookAck:
        return await self._receive("transcription", parse_transcription, form)

    async def _receive(self, name: str, parser: Callable[[Form], CallEvent], form: Form) -> WebhookAck:
        try:
            event = parser(form)
        except (MalformedPayloadError, ValidationError) as exc:
            logger.warning("Malformed %s webhook rejected: %s", name, exc)
            return WebhookAck(http_status=400, outcome="invalid_payload", message=str(exc))

        logger.info("%s webhook for call %s", name.capitalize(), event.provider_call_id)
        try:
            result = await self.orchestrator.handle_event(event)
        except Exception as exc:
            logger.exception("Error processing %s webhook for %s", name, event.provider_call_id)
            return WebhookAck(
                http_status=500,
                outcome="error",
                session_id=event.provider_call_id,
                message=str(exc) if self.expose_errors else f"Error processing {name} webhook",
            )
        return WebhookAck(
            http_status=200,
            outcome=result.outcome.value,
            session_id=result.session_id,
            message=result.message,
        )

    def voice_script(self, query: Form) -> str:
        """TwiML for the pharmacist, echoing the medication request."""
        return build_check_script(
            ScriptParams.from_query(query),
            transcription_callback=f"{self.webhook_base_url}/transcription",
            recording_callback=f"{self.webhook_base_url}/recording",
            response_action=f"{self.webhook_base_url}/handle-response",
            record_timeout=self.record_timeout,
        )

    def followup_script(self) -> str:
        return build_followup_script()
