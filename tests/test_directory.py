"""Tests for the pharmacy directory."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from src.schemas.pharmacy_schema import AvailabilityRecord
from src.storage.json_store import JsonCollection
from src.tools.directory import SEED_PHARMACIES, PharmacyDirectory
from src.utils import utc_now


class TestSeeding:
    def test_seeded_on_first_use(self, directory):
        ids = [p.id for p in directory.list_all()]
        assert ids == [p["id"] for p in SEED_PHARMACIES]

    def test_not_reseeded_over_existing_data(self, directory, pharmacies_path):
        directory.add({"id": "extra", "name": "Extra", "phone": "555"})
        again = PharmacyDirectory(JsonCollection(pharmacies_path), seed=SEED_PHARMACIES)
        assert len(again.list_all()) == len(SEED_PHARMACIES) + 1

    def test_get(self, directory):
        pharmacy = directory.get("cvs_main_st")
        assert pharmacy.name == "CVS Pharmacy - Main Street"
        assert pharmacy.phone == "+1234567890"

    def test_get_unknown(self, directory):
        assert directory.get("nowhere") is None


class TestFindDestinations:
    def test_general_category(self, directory):
        ids = [p.id for p in directory.find_destinations("10001", "general")]
        assert ids == ["cvs_main_st", "walgreens_oak_ave"]

    def test_specialty_includes_general(self, directory):
        ids = [p.id for p in directory.find_destinations("10001", "specialty_medications")]
        assert ids == ["cvs_main_st", "walgreens_oak_ave", "specialty_pharmacy"]

    def test_category_defaults_to_general(self, directory):
        assert len(directory.find_destinations("10001")) == 2

    def test_zip_filter_applies_when_declared(self, directory):
        directory.add({"id": "local", "name": "Local Rx", "phone": "555", "zipCode": "94110"})
        assert "local" in [p.id for p in directory.find_destinations("94110")]
        assert "local" not in [p.id for p in directory.find_destinations("10001")]

    def test_pharmacies_without_zip_match_everywhere(self, directory):
        assert len(directory.find_destinations(None)) == 2


class TestAdd:
    def test_add_generates_id_and_normalizes_phone(self, directory):
        pharmacy = directory.add({"name": "New Rx", "phone": "(555) 010-1234"})
        assert pharmacy.id.startswith("pharmacy_")
        assert pharmacy.phone == "5550101234"
        assert pharmacy.created_at is not None
        assert directory.get(pharmacy.id) is not None

    def test_accepts_specialty_alias(self, directory):
        pharmacy = directory.add({"id": "x", "name": "X", "phone": "1", "specialty": "compounding"})
        assert pharmacy.category == "compounding"

    def test_missing_required_fields(self, directory):
        with pytest.raises(ValidationError):
            directory.add({"name": "No Phone"})

    def test_re_adding_keeps_inventory(self, directory):
        record = AvailabilityRecord(available=True, last_checked=utc_now())
        directory.apply_availability("cvs_main_st", "Lisinopril", record)
        directory.add({"id": "cvs_main_st", "name": "CVS Renamed", "phone": "+1234567890"})
        pharmacy = directory.get("cvs_main_st")
        assert pharmacy.name == "CVS Renamed"
        assert "lisinopril" in pharmacy.inventory


class TestApplyAvailability:
    def test_writes_inventory_entry(self, directory):
        record = AvailabilityRecord(
            available=True, quantity="30 tablets", price=Decimal("12.50"), last_checked=utc_now(),
        )
        assert directory.apply_availability("cvs_main_st", "  Lisinopril  10MG", record)
        stored = directory.get("cvs_main_st").inventory["lisinopril 10mg"]
        assert stored.available is True
        assert stored.quantity == "30 tablets"
        assert stored.price == Decimal("12.50")

    def test_last_write_wins(self, directory):
        directory.apply_availability(
            "cvs_main_st", "Lisinopril", AvailabilityRecord(available=True, last_checked=utc_now()),
        )
        directory.apply_availability(
            "cvs_main_st", "lisinopril", AvailabilityRecord(available=False, last_checked=utc_now()),
        )
        inventory = directory.get("cvs_main_st").inventory
        assert list(inventory) == ["lisinopril"]
        assert inventory["lisinopril"].available is False

    def test_unknown_pharmacy(self, directory):
        record = AvailabilityRecord(available=True, last_checked=utc_now())
        assert directory.apply_availability("gone", "Lisinopril", record) is False


class TestPermissiveLocation:
    def test_compounding_query_includes_general_without_zip(self, tmp_path):
        directory = PharmacyDirectory(
            JsonCollection(str(tmp_path / "p.json")),
            seed=[
                {"id": "comp", "name": "Comp Rx", "phone": "1", "category": "compounding"},
                {"id": "gen", "name": "Gen Rx", "phone": "2", "category": "general"},
            ],
        )
        ids = [p.id for p in directory.find_destinations("12345", "compounding")]
        assert ids == ["comp", "gen"]


class TestNormalization:
    def test_registered_category_is_lowercased(self, directory):
        pharmacy = directory.add({"id": "comp", "name": "Comp Rx", "phone": "1", "category": " Compounding "})
        assert pharmacy.category == "compounding"
        assert directory.get("comp").category == "compounding"

    def test_mixed_case_category_is_found(self, directory):
        directory.add({"id": "comp", "name": "Comp Rx", "phone": "1", "category": "Compounding"})
        assert "comp" in [p.id for p in directory.find_destinations(None, "Compounding")]
        assert "comp" in [p.id for p in directory.find_destinations(None, "compounding")]

    def test_zip_code_whitespace_ignored(self, directory):
        directory.add({"id": "local", "name": "Local Rx", "phone": "555", "zipCode": "12345 "})
        assert directory.get("local").zip_code == "12345"
        assert "local" in [p.id for p in directory.find_destinations(" 12345")]

    def test_blank_zip_code_matches_everywhere(self, directory):
        directory.add({"id": "any", "name": "Any Rx", "phone": "555", "zipCode": "  "})
        assert "any" in [p.id for p in directory.find_destinations("99999")]
