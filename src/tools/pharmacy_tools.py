"""
Patient-facing pharmacy tools.

Thin wrappers over the pharmacy directory and the call orchestrator that
turn their results and errors into plain dictionaries the voice agent can
speak from. Each call returns ``success`` (or ``found``) plus a message.
"""

import logging
from typing import Optional, TypedDict

from pydantic import ValidationError

from src.calls.errors import DestinationNotFoundError, UpstreamFailureError
from src.calls.orchestrator import CallOrchestrator
from src.schemas.call_schema import CallState, MedicationRequest, PatientInfo
from src.schemas.pharmacy_schema import GENERAL_CATEGORY
from src.storage.json_store import PersistenceError

logger = logging.getLogger(__name__)

TOOL_NAMES = [
    "find_pharmacies",
    "check_medication_availability",
    "check_call_status",
    "schedule_medication_pickup",
]


class PharmacySearchResult(TypedDict):
    found: int
    pharmacies: list[dict]


class CheckResult(TypedDict, total=False):
    success: bool
    message: str
    error: str
    call_id: str
    pharmacy_name: str
    estimated_wait_time: str
    simulated: bool


class CallStatusResult(TypedDict, total=False):
    success: bool
    status: str
    message: str
    error: str
    pharmacy_name: str
    pharmacy_response: Optional[str]
    verdict: Optional[dict]
    call_duration: int


def find_pharmacies(
    orchestrator: CallOrchestrator,
    zip_code: Optional[str],
    medication_type: str = GENERAL_CATEGORY,
) -> PharmacySearchResult:
    """Pharmacies serving a zip code that handle the given medication type."""
    pharmacies = orchestrator.directory.find_destinations(zip_code, medication_type or GENERAL_CATEGORY)
    logger.info("Found %d pharmacies for zip=%s type=%s", len(pharmacies), zip_code, medication_type)
    return {"found": len(pharmacies), "pharmacies": [p.summary() for p in pharmacies]}


async def check_medication_availability(
    orchestrator: CallOrchestrator,
    pharmacy_id: str,
    medication_name: str,
    dosage: Optional[str] = None,
    quantity: Optional[str] = None,
    patient_info: Optional[dict] = None,
) -> CheckResult:
    """Call a pharmacy to ask whether a medication is in stock."""
    try:
        request = MedicationRequest(
            medication_name=medication_name,
            dosage=dosage,
            quantity=quantity,
            patient_info=PatientInfo.model_validate(patient_info) if patient_info else None,
        )
    except ValidationError:
        return {
            "success": False,
            "error": "Invalid request",
            "message": "A medication name is required to check availability.",
        }

    try:
        result = await orchestrator.initiate_check(pharmacy_id, request)
    except DestinationNotFoundError as exc:
        return {"success": False, "error": "Pharmacy not found", "message": str(exc)}
    except (UpstreamFailureError, PersistenceError) as exc:
        logger.error("Availability check for %s failed: %s", pharmacy_id, exc)
        return {
            "success": False,
            "error": str(exc),
            "message": "Failed to initiate call to pharmacy",
        }

    return {
        "success": True,
        "message": (
            f"Call initiated to {result.destination_name} "
            f"to check availability of {medication_name}"
        ),
        "call_id": result.session_id,
        "pharmacy_name": result.destination_name,
        "estimated_wait_time": result.estimated_wait,
        "simulated": result.simulated,
    }


async def check_call_status(
    orchestrator: CallOrchestrator, call_id: str, refresh: bool = True,
) -> CallStatusResult:
    """Progress and outcome of a previously placed check call."""
    report = await orchestrator.get_status(call_id, refresh=refresh)
    if not report.found:
        return {"success": False, "message": report.message}
    if report.error:
        return {
            "success": False,
            "status": report.state.value,
            "error": report.error,
            "message": report.message,
        }

    result: CallStatusResult = {
        "success": True,
        "status": report.state.value,
        "pharmacy_name": report.destination_name,
        "pharmacy_response": report.transcript,
        "verdict": report.verdict.model_dump(mode="json") if report.verdict else None,
        "call_duration": report.duration_seconds or 0,
        "message": report.message,
    }
    if report.state == CallState.COMPLETED and report.verdict is None:
        result["message"] = "Call completed, but the pharmacy's answer was unclear."
    return result
