"""Tests for telephony providers and TwiML scripts."""

from types import SimpleNamespace
from urllib.parse import parse_qs, urlparse

import pytest
from twilio.base.exceptions import TwilioRestException

from src.config import TelephonyConfig
from src.tools.telephony import (
    CALL_FAILURE_STATUSES,
    SimulatedTelephonyProvider,
    TelephonyError,
    TwilioTelephonyProvider,
    create_provider,
)
from src.tools.voice_script import ScriptParams, build_check_script, build_followup_script


def _config(**overrides) -> TelephonyConfig:
    values = dict(
        account_sid="AC" + "0" * 32,
        auth_token="secret-token-1234",
        from_number="+15550001111",
        webhook_base_url="https://example.ngrok.io/webhook",
        simulate=False,
    )
    values.update(overrides)
    return TelephonyConfig(**values)


class _FakeCalls:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.kwargs: dict = {}

    def create(self, **kwargs):
        if self.fail:
            raise TwilioRestException(401, "/Calls", msg="Authentication failed")
        self.kwargs = kwargs
        return SimpleNamespace(sid="CA123", status="queued")


class TestCreateProvider:
    def test_live_credentials_use_twilio(self):
        assert isinstance(create_provider(_config()), TwilioTelephonyProvider)

    def test_missing_credentials_simulate(self):
        provider = create_provider(_config(account_sid="", auth_token=""))
        assert isinstance(provider, SimulatedTelephonyProvider)
        assert provider.simulated is True

    def test_bad_sid_prefix_simulates(self):
        assert isinstance(create_provider(_config(account_sid="XX123")), SimulatedTelephonyProvider)

    def test_forced_simulation(self):
        provider = create_provider(_config(simulate=True, simulated_delay_sec=0.25))
        assert isinstance(provider, SimulatedTelephonyProvider)
        assert provider.delay_sec == 0.25


class TestTwilioProvider:
    @pytest.mark.asyncio
    async def test_place_call_wires_callbacks(self):
        calls = _FakeCalls()
        provider = TwilioTelephonyProvider(_config(), client=SimpleNamespace(calls=calls))
        placed = await provider.place_call("+15551234567", ScriptParams("Metformin", "500mg"))

        assert placed.provider_call_id == "CA123"
        assert placed.simulated is False
        assert calls.kwargs["to"] == "+15551234567"
        assert calls.kwargs["from_"] == "+15550001111"
        assert calls.kwargs["status_callback"] == "https://example.ngrok.io/webhook/status"
        # Recording is requested by the <Record> verb, not for the whole call
        assert "record" not in calls.kwargs
        assert "recording_status_callback" not in calls.kwargs

        url = urlparse(calls.kwargs["url"])
        assert url.path == "/webhook/voice"
        assert parse_qs(url.query) == {"medicationName": ["Metformin"], "dosage": ["500mg"]}

    @pytest.mark.asyncio
    async def test_rest_error_becomes_telephony_error(self):
        provider = TwilioTelephonyProvider(_config(), client=SimpleNamespace(calls=_FakeCalls(fail=True)))
        with pytest.raises(TelephonyError):
            await provider.place_call("+15551234567", ScriptParams("Metformin"))


class TestSimulatedProvider:
    @pytest.mark.asyncio
    async def test_call_ids_are_prefixed_and_unique(self):
        provider = SimulatedTelephonyProvider(auto_events=False)
        first = await provider.place_call("+1", ScriptParams("A"))
        second = await provider.place_call("+1", ScriptParams("A"))
        assert first.provider_call_id.startswith("SIM_")
        assert first.provider_call_id != second.provider_call_id
        assert len(provider.placed) == 2

    def test_scripted_success_sequence(self):
        provider = SimulatedTelephonyProvider(transcript="We have it")
        events = provider.scripted_events("SIM_1")
        assert [e.kind.value for e in events] == ["status", "status", "recording", "transcription"]
        assert events[-1].text == "We have it"

    @pytest.mark.parametrize("status", sorted(CALL_FAILURE_STATUSES))
    def test_scripted_failure_sequence(self, status):
        events = SimulatedTelephonyProvider(final_status=status).scripted_events("SIM_1")
        assert [e.status for e in events] == ["ringing", status]

    @pytest.mark.asyncio
    async def test_events_delivered_to_sink(self):
        received = []

        async def sink(event):
            received.append(event)

        provider = SimulatedTelephonyProvider(delay_sec=0)
        provider.bind_event_sink(sink)
        placed = await provider.place_call("+1", ScriptParams("A"))
        await provider.drain()
        assert len(received) == 4
        assert {e.provider_call_id for e in received} == {placed.provider_call_id}

    @pytest.mark.asyncio
    async def test_no_sink_no_playback(self):
        provider = SimulatedTelephonyProvider(delay_sec=0)
        await provider.place_call("+1", ScriptParams("A"))
        await provider.drain()

    @pytest.mark.asyncio
    async def test_fetch_details(self):
        details = await SimulatedTelephonyProvider().fetch_call_and_recordings("SIM_1")
        assert details.status == "completed"
        assert details.duration_seconds == 45
        assert details.recordings[0].transcript_text


class TestVoiceScript:
    def test_check_script_mentions_request(self):
        xml = build_check_script(
            ScriptParams("Lisinopril", "10mg", "30 tablets"),
            transcription_callback="https://x/webhook/transcription",
            response_action="https://x/webhook/handle-response",
        )
        assert "Lisinopril" in xml
        assert "The dosage required is 10mg." in xml
        assert "The quantity needed is 30 tablets." in xml
        assert 'transcribe="true"' in xml
        assert 'finishOnKey="#"' in xml
        assert 'timeout="30"' in xml

    def test_check_script_omits_missing_details(self):
        xml = build_check_script(ScriptParams("Lisinopril"), "https://x/t", "https://x/h")
        assert "dosage" not in xml
        assert "quantity" not in xml
        assert "recordingStatusCallback" not in xml

    def test_recording_callback_on_record_verb(self):
        xml = build_check_script(
            ScriptParams("Lisinopril"), "https://x/t", "https://x/h",
            recording_callback="https://x/webhook/recording",
        )
        assert 'recordingStatusCallback="https://x/webhook/recording"' in xml
        assert 'recordingStatusCallbackMethod="POST"' in xml

    def test_followup_script(self):
        xml = build_followup_script()
        assert "Thank you for the information" in xml
        assert "<Hangup" in xml

    def test_query_round_trip(self):
        params = ScriptParams("Lisinopril", quantity="30")
        assert ScriptParams.from_query(params.to_query()) == params
