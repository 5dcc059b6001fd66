"""Tests for import chains and module integrity.

Ensures all public modules can be imported without errors and
that re-exports from __init__.py files work correctly.
"""


class TestSchemaImports:
    def test_import_call_schema(self):
        from src.schemas.call_schema import CallState, CallSession, MedicationRequest
        assert CallState.TRANSCRIBING == "transcribing"
        assert MedicationRequest(medication_name="x").dosage is None

    def test_import_event_schema(self):
        from src.schemas.event_schema import CallEvent, EventOutcome
        assert EventOutcome.DUPLICATE == "duplicate"

    def test_import_patient_schema(self):
        from src.schemas.patient_schema import PatientSession
        session = PatientSession()
        assert session.pending_call_ids == []
        assert session.patient_info() is None


class TestPackageExports:
    def test_calls_package(self):
        from src.calls import (
            CallOrchestrator, CallStateMachine, CallTrigger, SessionStore,
            WebhookIngress, DestinationNotFoundError, UpstreamFailureError,
        )
        assert CallStateMachine().current_state.value == "initiated"

    def test_storage_package(self):
        from src.storage import JsonCollection, PersistenceError
        assert issubclass(PersistenceError, Exception)


class TestToolImports:
    def test_import_tools(self):
        from src.tools.pharmacy_tools import TOOL_NAMES
        from src.tools.pickup import schedule_medication_pickup
        assert "schedule_medication_pickup" in TOOL_NAMES
        assert callable(schedule_medication_pickup)


class TestPromptImports:
    def test_import_system_prompt(self):
        from src.prompts.system_prompts import PHARMACY_SYSTEM_PROMPT
        assert "check_medication_availability" in PHARMACY_SYSTEM_PROMPT
        assert "medical advice" in PHARMACY_SYSTEM_PROMPT


class TestAgent:
    def test_agent_builds_with_injected_orchestrator(self, orchestrator):
        from src.agents import PharmacyAgent
        agent = PharmacyAgent(orchestrator=orchestrator)
        assert agent is not None


class TestConfigImport:
    def test_import_config(self):
        from src.config import settings
        assert settings.agent_name
        assert settings.telephony.webhook_base_url.startswith("http")


class TestConsoleDemo:
    def test_scenarios_defined(self):
        from console_demo import SCENARIOS
        assert set(SCENARIOS) == {"in_stock", "out_of_stock", "limited", "no_answer"}

    def test_scenario_runs_offline(self, capsys):
        from console_demo import main
        assert main(["--scenario", "limited", "--delay", "0"]) == 0
        out = capsys.readouterr().out
        assert "initiated -> ringing -> answered -> recording -> transcribing -> completed" in out
        assert "quantity=12 tablets" in out
