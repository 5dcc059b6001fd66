"""TwiML documents spoken to the pharmacy during a check call."""

from dataclasses import dataclass
from typing import Mapping, Optional

from twilio.twiml.voice_response import VoiceResponse

from src.schemas.call_schema import MedicationRequest

VOICE = "alice"
LANGUAGE = "en-US"
DEFAULT_MEDICATION = "the requested medication"


@dataclass(frozen=True)
class ScriptParams:
    """The request details echoed to the pharmacist."""

    medication_name: str
    dosage: Optional[str] = None
    quantity: Optional[str] = None

    @classmethod
    def from_request(cls, request: MedicationRequest) -> "ScriptParams":
        return cls(
            medication_name=request.medication_name,
            dosage=request.dosage,
            quantity=request.quantity,
        )

    @classmethod
    def from_query(cls, params: Mapping[str, str]) -> "ScriptParams":
        """Rebuild params from the voice webhook query string."""
        return cls(
            medication_name=(params.get("medicationName") or "").strip() or DEFAULT_MEDICATION,
            dosage=(params.get("dosage") or "").strip() or None,
            quantity=(params.get("quantity") or "").strip() or None,
        )

    def to_query(self) -> dict[str, str]:
        query = {"medicationName": self.medication_name}
        if self.dosage:
            query["dosage"] = self.dosage
        if self.quantity:
            query["quantity"] = self.quantity
        return query


def build_check_script(
    params: ScriptParams,
    transcription_callback: str,
    response_action: str,
    record_timeout: int = 30,
    recording_callback: Optional[str] = None,
) -> str:
    """Ask about the medication, then record and transcribe the reply.

    Only the reply is recorded, so the recording reported to
    ``recording_callback`` is the same audio that gets transcribed.
    """
    lines = [
        "Hello, I'm calling on behalf of a patient to check medication availability.",
        f"I need to verify if you have {params.medication_name} in stock.",
    ]
    if params.dosage:
        lines.append(f"The dosage required is {params.dosage}.")
    if params.quantity:
        lines.append(f"The quantity needed is {params.quantity}.")
    lines.append("Can you please check your inventory and let me know the availability?")

    response = VoiceResponse()
    response.say(" ".join(lines), voice=VOICE, language=LANGUAGE)
    response.record(
        timeout=record_timeout,
        finish_on_key="#",
        action=response_action,
        method="POST",
        transcribe=True,
        transcribe_callback=transcription_callback,
        recording_status_callback=recording_callback,
        recording_status_callback_method="POST" if recording_callback else None,
    )
    response.say(
        "Thank you for your time. If you need to provide additional information, "
        "please call us back at the number that appeared on your caller ID.",
        voice=VOICE,
        language=LANGUAGE,
    )
    return str(response)


def build_followup_script() -> str:
    """Played after the pharmacist finishes recording."""
    response = VoiceResponse()
    response.say(
        "Thank you for the information. We have recorded your response "
        "and will follow up if needed. Have a great day!",
        voice=VOICE,
        language=LANGUAGE,
    )
    response.hangup()
    return str(response)
