"""
Pharmacy assistant agent: finds pharmacies, places check calls, and reports results.

Each tool records what the patient has told us on the session userdata,
delegates to the pharmacy tools, and returns a sentence the LLM can speak.
Check calls run in the background; the patient is told the expected wait
and the agent polls with check_call_status.
"""

import asyncio
from typing import Optional

from livekit.agents import Agent, RunContext, function_tool

from src.calls.orchestrator import CallOrchestrator
from src.calls.runtime import get_orchestrator
from src.logging_context import get_call_logger
from src.prompts.prompt_templates import (
    build_availability_summary,
    build_pharmacy_options_prompt,
)
from src.prompts.system_prompts import PHARMACY_SYSTEM_PROMPT
from src.schemas.patient_schema import PatientSession
from src.tools import pharmacy_tools
from src.tools.pickup import schedule_medication_pickup

logger = get_call_logger(__name__)


class PharmacyAgent(Agent):
    """Medication availability assistant for patients."""

    def __init__(self, orchestrator: Optional[CallOrchestrator] = None) -> None:
        super().__init__(
            instructions=PHARMACY_SYSTEM_PROMPT,
        )
        self._orchestrator = orchestrator or get_orchestrator()

    @function_tool()
    async def find_pharmacies(
        self,
        context: RunContext[PatientSession],
        zip_code: str,
        medication_type: str = "general",
    ) -> str:
        """Find pharmacies near a zip code.

        medication_type is one of: general, specialty_medications, compounding.
        """
        context.userdata.zip_code = zip_code
        result = await asyncio.to_thread(
            pharmacy_tools.find_pharmacies, self._orchestrator, zip_code, medication_type,
        )
        return build_pharmacy_options_prompt(result["pharmacies"])

    @function_tool()
    async def check_medication_availability(
        self,
        context: RunContext[PatientSession],
        pharmacy_id: str,
        medication_name: str,
        dosage: Optional[str] = None,
        quantity: Optional[str] = None,
    ) -> str:
        """Call a pharmacy to check whether it has a medication in stock.

        Only call after the patient confirms the medication details.
        """
        data = context.userdata
        data.pharmacy_id = pharmacy_id
        data.medication_name = medication_name
        data.dosage = dosage
        data.quantity = quantity

        info = data.patient_info()
        result = await pharmacy_tools.check_medication_availability(
            self._orchestrator,
            pharmacy_id,
            medication_name,
            dosage=dosage,
            quantity=quantity,
            patient_info=info.model_dump() if info else None,
        )
        if not result["success"]:
            return f"{result['message']}. Offer to try another pharmacy."

        data.pending_call_ids.append(result["call_id"])
        logger.info("Check call %s placed for %s", result["call_id"], medication_name)
        return (
            f"{result['message']}. Call ID {result['call_id']}. "
            f"Tell the patient this usually takes {result['estimated_wait_time']}."
        )

    @function_tool()
    async def check_call_status(
        self, context: RunContext[PatientSession], call_id: Optional[str] = None
    ) -> str:
        """Check progress of a pharmacy call. Defaults to the most recent call."""
        pending = context.userdata.pending_call_ids
        call_id = call_id or (pending[-1] if pending else None)
        if call_id is None:
            return "No pharmacy call has been placed yet."

        result = await pharmacy_tools.check_call_status(self._orchestrator, call_id)
        if not result["success"]:
            return result["message"]
        if result["status"] == "completed":
            return build_availability_summary(
                result["pharmacy_name"],
                context.userdata.medication_name or "the medication",
                result["verdict"],
            )
        if result["status"] == "failed":
            return f"{result['message']}. Offer to call again or try another pharmacy."
        return f"{result['message']}. The call is still in progress, ask the patient to hold on."

    @function_tool()
    async def schedule_medication_pickup(
        self,
        context: RunContext[PatientSession],
        pickup_time: str,
        patient_name: str,
        contact_phone: str,
    ) -> str:
        """Schedule a pickup at the pharmacy that confirmed availability."""
        data = context.userdata
        data.patient_name = patient_name
        data.contact_phone = contact_phone
        if not data.pharmacy_id or not data.medication_name:
            return "Check availability at a pharmacy before scheduling a pickup."

        result = schedule_medication_pickup(
            pharmacy_id=data.pharmacy_id,
            medication_name=data.medication_name,
            pickup_time=pickup_time,
            patient_name=patient_name,
            contact_phone=contact_phone,
        )
        if not result["success"]:
            return result["message"]
        data.pickup_refs.append(result["confirmation_number"])
        return f"{result['message']}. {result['reminder']}"
