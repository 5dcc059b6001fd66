"""Per-conversation agent state for the patient-facing assistant."""

from dataclasses import dataclass, field
from typing import Optional

from src.schemas.call_schema import PatientInfo


@dataclass
class PatientSession:
    """
    Per-conversation structured data shared across agent tools.

    Persists on `session.userdata` throughout the voice conversation.
    Tools read and write this instead of parsing chat history.
    """
    patient_name: Optional[str] = None
    contact_phone: Optional[str] = None
    zip_code: Optional[str] = None
    medication_name: Optional[str] = None
    dosage: Optional[str] = None
    quantity: Optional[str] = None
    pharmacy_id: Optional[str] = None
    pending_call_ids: list[str] = field(default_factory=list)
    pickup_refs: list[str] = field(default_factory=list)

    def patient_info(self) -> Optional[PatientInfo]:
        """Details passed along to the pharmacy, when any were given."""
        if not self.patient_name and not self.contact_phone:
            return None
        return PatientInfo(name=self.patient_name, phone=self.contact_phone)
