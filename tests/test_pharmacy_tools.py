"""Tests for the patient-facing pharmacy tools, pickup scheduling, and spoken summaries."""

import pytest

from src.calls.orchestrator import CallOrchestrator
from src.prompts.prompt_templates import build_availability_summary, build_pharmacy_options_prompt
from src.tools import pharmacy_tools
from src.tools.pickup import PICKUP_REMINDER, get_pickup, schedule_medication_pickup
from src.tools.telephony import SimulatedTelephonyProvider, TelephonyError
from tests.conftest import transcription_event


class TestFindPharmacies:
    def test_general(self, orchestrator):
        result = pharmacy_tools.find_pharmacies(orchestrator, "10001")
        assert result["found"] == 2
        assert set(result["pharmacies"][0]) == {"id", "name", "address", "hours", "category"}

    def test_specialty(self, orchestrator):
        result = pharmacy_tools.find_pharmacies(orchestrator, "10001", "specialty_medications")
        assert result["found"] == 3


class TestCheckMedicationAvailability:
    @pytest.mark.asyncio
    async def test_success(self, orchestrator):
        result = await pharmacy_tools.check_medication_availability(
            orchestrator, "cvs_main_st", "Lisinopril", dosage="10mg",
            patient_info={"name": "Jane Doe", "phone": "+15550101234"},
        )
        assert result["success"] is True
        assert result["message"] == (
            "Call initiated to CVS Pharmacy - Main Street to check availability of Lisinopril"
        )
        assert result["estimated_wait_time"] == "2-5 minutes"
        session = orchestrator.get_session(result["call_id"])
        assert session.request.patient_info.name == "Jane Doe"

    @pytest.mark.asyncio
    async def test_unknown_pharmacy(self, orchestrator):
        result = await pharmacy_tools.check_medication_availability(orchestrator, "nowhere", "Lisinopril")
        assert result["success"] is False
        assert result["error"] == "Pharmacy not found"
        assert result["message"] == "Pharmacy with ID nowhere not found"

    @pytest.mark.asyncio
    async def test_blank_medication(self, orchestrator):
        result = await pharmacy_tools.check_medication_availability(orchestrator, "cvs_main_st", "")
        assert result["success"] is False
        assert orchestrator.list_sessions() == []

    @pytest.mark.asyncio
    async def test_provider_failure(self, directory, store):
        class Failing(SimulatedTelephonyProvider):
            async def place_call(self, destination_phone, script):
                raise TelephonyError("Authentication failed")

        orchestrator = CallOrchestrator(directory, store, Failing(auto_events=False))
        result = await pharmacy_tools.check_medication_availability(orchestrator, "cvs_main_st", "Lisinopril")
        assert result["success"] is False
        assert result["message"] == "Failed to initiate call to pharmacy"
        assert "Authentication failed" in result["error"]


class TestCheckCallStatus:
    @pytest.mark.asyncio
    async def test_unknown_call(self, orchestrator):
        result = await pharmacy_tools.check_call_status(orchestrator, "nope")
        assert result == {"success": False, "message": "Call ID not found"}

    @pytest.mark.asyncio
    async def test_in_progress(self, orchestrator):
        placed = await pharmacy_tools.check_medication_availability(orchestrator, "cvs_main_st", "Lisinopril")
        result = await pharmacy_tools.check_call_status(orchestrator, placed["call_id"], refresh=False)
        assert result["success"] is True
        assert result["status"] == "initiated"
        assert result["verdict"] is None

    @pytest.mark.asyncio
    async def test_completed(self, orchestrator):
        placed = await pharmacy_tools.check_medication_availability(orchestrator, "cvs_main_st", "Lisinopril")
        await orchestrator.handle_event(transcription_event(placed["call_id"], "Yes, we have it at $4.00"))
        result = await pharmacy_tools.check_call_status(orchestrator, placed["call_id"])
        assert result["status"] == "completed"
        assert result["pharmacy_response"] == "Yes, we have it at $4.00"
        assert result["verdict"]["available"] is True
        assert result["call_duration"] == 45

    @pytest.mark.asyncio
    async def test_completed_without_signal(self, orchestrator):
        placed = await pharmacy_tools.check_medication_availability(orchestrator, "cvs_main_st", "Lisinopril")
        await orchestrator.handle_event(transcription_event(placed["call_id"], "Please hold"))
        result = await pharmacy_tools.check_call_status(orchestrator, placed["call_id"], refresh=False)
        assert result["verdict"] is None
        assert "unclear" in result["message"]


class TestPickup:
    def test_schedule(self):
        result = schedule_medication_pickup(
            "cvs_main_st", "Lisinopril", "5:00 PM", "Jane Doe", "+15550101234",
        )
        assert result["success"] is True
        assert result["confirmation_number"].startswith("PU-")
        assert result["reminder"] == PICKUP_REMINDER
        assert get_pickup(result["confirmation_number"])["status"] == "scheduled"

    def test_missing_fields(self):
        result = schedule_medication_pickup("cvs_main_st", "Lisinopril", "", "Jane Doe", " ")
        assert result["success"] is False
        assert "pickup_time" in result["message"]
        assert "contact_phone" in result["message"]

    def test_unknown_reference(self):
        assert get_pickup("PU-NOPE") is None


class TestSpokenSummaries:
    def test_in_stock(self):
        text = build_availability_summary(
            "CVS", "Lisinopril",
            {"available": True, "confidence": "high", "quantity": "30 tablets", "price": "12.50"},
        )
        assert "in stock" in text
        assert "30 tablets" in text
        assert "12.50" in text

    def test_limited(self):
        text = build_availability_summary(
            "CVS", "Lisinopril", {"available": True, "confidence": "medium", "quantity": "limited"},
        )
        assert "limited stock" in text

    def test_unavailable(self):
        text = build_availability_summary("CVS", "Lisinopril", {"available": False, "confidence": "high"})
        assert "does not have" in text

    def test_unclear(self):
        assert "not clear" in build_availability_summary("CVS", "Lisinopril", None)

    def test_pharmacy_options(self):
        text = build_pharmacy_options_prompt([
            {"id": "a", "name": "A Rx", "address": "1 St", "hours": "9-5"},
        ])
        assert "A Rx (ID a)" in text

    def test_no_pharmacy_options(self):
        assert "No pharmacies matched" in build_pharmacy_options_prompt([])
