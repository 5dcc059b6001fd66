"""
Telephony providers for placing pharmacy check calls.

Two implementations of one capability interface:

- TwilioTelephonyProvider places real calls through the Twilio REST API.
  Progress arrives later as webhooks (status, recording, transcription).
- SimulatedTelephonyProvider fabricates call ids and, after a short
  delay, pushes the same event sequence a real call would produce
  straight into the orchestrator. Used whenever live credentials are
  missing, and by the console demo and tests.

Both return the same PlacedCall and CallDetails structures, so the
orchestrator never needs to know which one it is talking to.
"""

import asyncio
import logging
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import urlencode

from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from src.config import TelephonyConfig
from src.schemas.call_schema import RecordingInfo
from src.schemas.event_schema import CallEvent
from src.tools.voice_script import ScriptParams

logger = logging.getLogger(__name__)

EventSink = Callable[[CallEvent], Awaitable[Any]]

STATUS_CALLBACK_EVENTS = ["initiated", "ringing", "answered", "completed"]
CALL_FAILURE_STATUSES = frozenset({"busy", "no-answer", "failed", "canceled"})

CANNED_TRANSCRIPT = (
    "Yes, we have that medication in stock. We have 50+ tablets available "
    "at $15.99. Would you like us to hold it for pickup?"
)


class TelephonyError(Exception):
    """The telephony provider rejected or failed a request."""


@dataclass
class PlacedCall:
    provider_call_id: str
    status: str = "initiated"
    simulated: bool = False


@dataclass
class ProviderRecording:
    id: str
    url: str
    duration_seconds: Optional[int] = None
    transcript_text: Optional[str] = None


@dataclass
class CallDetails:
    provider_call_id: str
    status: str
    duration_seconds: int = 0
    recordings: list[ProviderRecording] = field(default_factory=list)


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class TelephonyProvider(ABC):
    """Capability interface the orchestrator depends on."""

    simulated: bool = False

    def __init__(self) -> None:
        self._event_sink: Optional[EventSink] = None

    def bind_event_sink(self, sink: EventSink) -> None:
        """Register where provider-originated events should be delivered."""
        self._event_sink = sink

    @abstractmethod
    async def place_call(self, destination_phone: str, script: ScriptParams) -> PlacedCall:
        """Start an outbound call. Must not wait for the call to finish."""

    @abstractmethod
    async def fetch_call_and_recordings(self, provider_call_id: str) -> CallDetails:
        """Current call status plus any recordings and their transcripts."""


class TwilioTelephonyProvider(TelephonyProvider):
    """Live calls through the Twilio REST API."""

    def __init__(self, config: TelephonyConfig, client: Optional[Client] = None) -> None:
        super().__init__()
        self.config = config
        self._client = client or Client(config.account_sid, config.auth_token)

    def _webhook(self, path: str) -> str:
        return f"{self.config.webhook_base_url.rstrip('/')}/{path}"

    async def place_call(self, destination_phone: str, script: ScriptParams) -> PlacedCall:
        voice_url = f"{self._webhook('voice')}?{urlencode(script.to_query())}"
        try:
            call = await asyncio.to_thread(
                self._client.calls.create,
                to=destination_phone,
                from_=self.config.from_number,
                url=voice_url,
                status_callback=self._webhook("status"),
                status_callback_event=STATUS_CALLBACK_EVENTS,
            )
        except TwilioException as exc:
            logger.error("Twilio call to %s failed: %s", destination_phone, exc)
            raise TelephonyError(str(exc)) from exc

        logger.info("Call initiated to %s: %s", destination_phone, call.sid)
        return PlacedCall(provider_call_id=call.sid, status=call.status or "initiated")

    async def fetch_call_and_recordings(self, provider_call_id: str) -> CallDetails:
        try:
            call = await asyncio.to_thread(self._client.calls(provider_call_id).fetch)
            recordings = await asyncio.to_thread(
                self._client.recordings.list, call_sid=provider_call_id
            )
            results = []
            for rec in recordings:
                transcriptions = await asyncio.to_thread(
                    self._client.recordings(rec.sid).transcriptions.list, limit=1
                )
                results.append(ProviderRecording(
                    id=rec.sid,
                    url=f"https://api.twilio.com{(rec.uri or '').removesuffix('.json')}",
                    duration_seconds=_to_int(rec.duration),
                    transcript_text=transcriptions[0].transcription_text if transcriptions else None,
                ))
        except TwilioException as exc:
            logger.error("Error fetching call details for %s: %s", provider_call_id, exc)
            raise TelephonyError(str(exc)) from exc

        return CallDetails(
            provider_call_id=provider_call_id,
            status=call.status or "unknown",
            duration_seconds=_to_int(call.duration) or 0,
            recordings=results,
        )


class SimulatedTelephonyProvider(TelephonyProvider):
    """Credential-free stand-in that plays back a scripted call."""

    simulated = True

    def __init__(
        self,
        delay_sec: float = 2.0,
        transcript: str = CANNED_TRANSCRIPT,
        final_status: str = "completed",
        auto_events: bool = True,
    ) -> None:
        super().__init__()
        self.delay_sec = delay_sec
        self.transcript = transcript
        self.final_status = final_status
        self.auto_events = auto_events
        self.placed: list[tuple[str, ScriptParams]] = []
        self._tasks: set[asyncio.Task] = set()

    async def place_call(self, destination_phone: str, script: ScriptParams) -> PlacedCall:
        call_id = f"SIM_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"
        self.placed.append((call_id, script))
        logger.info(
            "SIMULATED CALL to %s for %s (call id %s)",
            destination_phone, script.medication_name, call_id,
        )

        if self.auto_events and self._event_sink is not None:
            task = asyncio.get_running_loop().create_task(self._play(call_id))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        return PlacedCall(provider_call_id=call_id, simulated=True)

    def scripted_events(self, call_id: str) -> list[CallEvent]:
        """The webhook sequence a real call with this outcome would produce."""
        if self.final_status in CALL_FAILURE_STATUSES:
            return [
                CallEvent.status_change(call_id, "ringing"),
                CallEvent.status_change(call_id, self.final_status),
            ]
        return [
            CallEvent.status_change(call_id, "ringing"),
            CallEvent.status_change(call_id, "in-progress"),
            CallEvent.recording_ready(call_id, RecordingInfo(
                id=f"REC_{call_id}", url="/recordings/simulated", duration_seconds=30,
            )),
            CallEvent.transcription(call_id, "completed", self.transcript),
        ]

    async def _play(self, call_id: str) -> None:
        await asyncio.sleep(self.delay_sec)
        for event in self.scripted_events(call_id):
            try:
                await self._event_sink(event)
            except Exception:
                logger.exception("Simulated event delivery failed for %s", call_id)
                return

    async def drain(self) -> None:
        """Wait for all scheduled playbacks to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def fetch_call_and_recordings(self, provider_call_id: str) -> CallDetails:
        if self.final_status in CALL_FAILURE_STATUSES:
            return CallDetails(provider_call_id=provider_call_id, status=self.final_status)
        return CallDetails(
            provider_call_id=provider_call_id,
            status="completed",
            duration_seconds=45,
            recordings=[ProviderRecording(
                id=f"REC_{provider_call_id}",
                url="/recordings/simulated",
                duration_seconds=30,
                transcript_text=self.transcript,
            )],
        )


def create_provider(config: TelephonyConfig) -> TelephonyProvider:
    """Pick the live provider when credentials allow, otherwise simulate."""
    if config.simulate:
        logger.info("Telephony forced into simulated mode")
        return SimulatedTelephonyProvider(delay_sec=config.simulated_delay_sec)
    if not config.has_live_credentials:
        logger.warning("Twilio credentials not found or invalid. Calls will be simulated.")
        return SimulatedTelephonyProvider(delay_sec=config.simulated_delay_sec)
    logger.info("Twilio telephony provider initialized")
    return TwilioTelephonyProvider(config)
