"""
Mock medication pickup scheduling.

In production, this would integrate with the pharmacy's own scheduling
or will-call system.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, TypedDict

logger = logging.getLogger(__name__)

PICKUP_REMINDER = "Please bring a valid ID and insurance card when picking up your medication."


class PickupRecord(TypedDict):
    """A scheduled pickup."""

    confirmation_number: str
    pharmacy_id: str
    medication_name: str
    pickup_time: str
    patient_name: str
    contact_phone: str
    status: str
    created_at: str


class PickupResult(TypedDict, total=False):
    success: bool
    message: str
    confirmation_number: str
    reminder: str
    details: PickupRecord


_pickups: dict[str, PickupRecord] = {}


def schedule_medication_pickup(
    pharmacy_id: str,
    medication_name: str,
    pickup_time: str,
    patient_name: str,
    contact_phone: str,
) -> PickupResult:
    """Schedule a pickup after availability has been confirmed."""
    missing = [
        field_name
        for field_name, value in [
            ("pharmacy_id", pharmacy_id),
            ("medication_name", medication_name),
            ("pickup_time", pickup_time),
            ("patient_name", patient_name),
            ("contact_phone", contact_phone),
        ]
        if not value or not value.strip()
    ]
    if missing:
        return {
            "success": False,
            "message": f"Cannot schedule pickup - missing required fields: {', '.join(missing)}.",
        }

    ref = f"PU-{uuid.uuid4().hex[:6].upper()}"
    record: PickupRecord = {
        "confirmation_number": ref,
        "pharmacy_id": pharmacy_id,
        "medication_name": medication_name,
        "pickup_time": pickup_time,
        "patient_name": patient_name,
        "contact_phone": contact_phone,
        "status": "scheduled",
        "created_at": datetime.now(timezone.utc).isoformat(),
    }
    _pickups[ref] = record
    logger.info("Pickup scheduled: %s for %s at %s", ref, medication_name, pickup_time)

    return {
        "success": True,
        "confirmation_number": ref,
        "message": (
            f"Pickup scheduled for {medication_name} at {pickup_time}. "
            f"Confirmation number: {ref}"
        ),
        "reminder": PICKUP_REMINDER,
        "details": record,
    }


def get_pickup(confirmation_number: str) -> Optional[PickupRecord]:
    return _pickups.get(confirmation_number)


def reset() -> None:
    """Clear all pickups. Used by test fixtures for isolation."""
    _pickups.clear()
