"""
Pharmacy directory backed by the durable pharmacies collection.

Read-mostly reference data: the seed list is written on first use, new
pharmacies can be registered through the admin API, and the only
mutation after that is the orchestrator recording availability verdicts
into a pharmacy's inventory map.
"""

import logging
import time
from typing import Optional

from src.schemas.pharmacy_schema import GENERAL_CATEGORY, AvailabilityRecord, Pharmacy
from src.storage.json_store import JsonCollection
from src.utils import medication_key, normalize_phone, utc_now

logger = logging.getLogger(__name__)

SEED_PHARMACIES: list[dict] = [
    {
        "id": "cvs_main_st",
        "name": "CVS Pharmacy - Main Street",
        "phone": "+1234567890",
        "address": "123 Main St, Anytown, USA",
        "hours": "8:00 AM - 10:00 PM",
        "category": "general",
    },
    {
        "id": "walgreens_oak_ave",
        "name": "Walgreens - Oak Avenue",
        "phone": "+1234567891",
        "address": "456 Oak Ave, Anytown, USA",
        "hours": "7:00 AM - 11:00 PM",
        "category": "general",
    },
    {
        "id": "specialty_pharmacy",
        "name": "Specialty Care Pharmacy",
        "phone": "+1234567892",
        "address": "789 Medical Dr, Anytown, USA",
        "hours": "9:00 AM - 6:00 PM",
        "category": "specialty_medications",
    },
    {
        "id": "compounding_pharmacy",
        "name": "Custom Compounding Pharmacy",
        "phone": "+1234567893",
        "address": "321 Health Blvd, Anytown, USA",
        "hours": "8:00 AM - 8:00 PM",
        "category": "compounding",
    },
]

MEDICATION_CATEGORIES = ("general", "specialty_medications", "compounding")


class PharmacyDirectory:
    """Lookup and inventory updates over the pharmacies collection."""

    def __init__(self, collection: JsonCollection, seed: Optional[list[dict]] = None) -> None:
        self._collection = collection
        if seed and self._collection.seed([Pharmacy.model_validate(p).model_dump(mode="json") for p in seed]):
            logger.info("Pharmacy directory seeded with %d entries", len(seed))

    def list_all(self) -> list[Pharmacy]:
        return [Pharmacy.model_validate(r) for r in self._collection.all()]

    def get(self, pharmacy_id: str) -> Optional[Pharmacy]:
        record = self._collection.get(pharmacy_id)
        return Pharmacy.model_validate(record) if record else None

    def find_destinations(self, zip_code: Optional[str], category: str = GENERAL_CATEGORY) -> list[Pharmacy]:
        """Pharmacies serving ``category`` (or general) in ``zip_code``.

        Pharmacies without a declared zip code match every location.
        Results keep directory order; there is no distance ranking.
        """
        wanted = (category or "").strip().lower() or GENERAL_CATEGORY
        zip_code = zip_code.strip() if zip_code else zip_code
        matches = []
        for pharmacy in self.list_all():
            if pharmacy.category not in (wanted, GENERAL_CATEGORY):
                continue
            if pharmacy.zip_code and pharmacy.zip_code != zip_code:
                continue
            matches.append(pharmacy)
        return matches

    def add(self, data: dict) -> Pharmacy:
        """Register a pharmacy, replacing any existing entry with the same id."""
        payload = dict(data)
        payload.setdefault("id", f"pharmacy_{int(time.time() * 1000)}")
        payload.setdefault("created_at", utc_now())
        pharmacy = Pharmacy.model_validate(payload)
        pharmacy = pharmacy.model_copy(update={"phone": normalize_phone(pharmacy.phone)})
        existing = self.get(pharmacy.id)
        if existing is not None and not pharmacy.inventory:
            pharmacy = pharmacy.model_copy(update={"inventory": existing.inventory})
        self._collection.upsert(pharmacy.model_dump(mode="json"))
        logger.info("Pharmacy registered: %s (%s)", pharmacy.id, pharmacy.name)
        return pharmacy

    def apply_availability(
        self, pharmacy_id: str, medication_name: str, record: AvailabilityRecord
    ) -> bool:
        """Overwrite the inventory entry for one medication.

        Returns False when the pharmacy does not exist; callers treat that
        as a dangling reference, not an error.
        """
        key = medication_key(medication_name)

        def _mutate(stored: dict) -> dict:
            inventory = dict(stored.get("inventory") or {})
            inventory[key] = record.model_dump(mode="json")
            stored["inventory"] = inventory
            return stored

        updated = self._collection.modify(pharmacy_id, _mutate)
        if updated is None:
            logger.warning("Inventory update skipped: pharmacy %s not found", pharmacy_id)
            return False
        logger.info(
            "Inventory updated: %s / %s -> available=%s quantity=%s",
            pharmacy_id, key, record.available, record.quantity,
        )
        return True
