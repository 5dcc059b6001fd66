"""Pharmacy directory and inventory data models."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

GENERAL_CATEGORY = "general"


class AvailabilityRecord(BaseModel):
    """Last known availability of one medication at one pharmacy."""
    available: bool
    quantity: str = "unknown"
    price: Optional[Decimal] = None
    last_checked: datetime


class Pharmacy(BaseModel):
    """A callable pharmacy with contact details and a mutable inventory view."""
    id: str
    name: str
    phone: str
    address: str = ""
    hours: str = ""
    category: str = Field(
        default=GENERAL_CATEGORY,
        validation_alias=AliasChoices("category", "specialty"),
    )
    zip_code: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("zip_code", "zipCode"),
    )
    inventory: dict[str, AvailabilityRecord] = Field(default_factory=dict)
    created_at: Optional[datetime] = None

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value):
        if isinstance(value, str):
            return value.strip().lower() or GENERAL_CATEGORY
        return value

    @field_validator("zip_code", mode="before")
    @classmethod
    def _strip_zip_code(cls, value):
        if isinstance(value, str):
            return value.strip() or None
        return value

    def summary(self) -> dict:
        """Public listing fields, without the inventory map."""
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "hours": self.hours,
            "category": self.category,
        }
