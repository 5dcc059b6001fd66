"""
Keyword classifier for transcribed pharmacy replies.

Turns free text such as "Yes, we have 30 tablets at $12.50" into an
AvailabilityVerdict. This is a substring heuristic, not language
understanding. The lexicons are checked in a fixed order and each later
match overwrites the earlier result:

    positive  ->  negative  ->  partial

So a reply containing both "yes" and "no" is negative, and anything
mentioning "limited" is partial regardless of the rest. Note that the
negative lexicon contains the bare word "no", which also matches inside
words such as "not" or "know".
"""

import re
from decimal import Decimal
from typing import Optional

from src.schemas.call_schema import AvailabilityVerdict, Confidence

POSITIVE_PHRASES = ("yes", "available", "in stock", "have it", "we have", "stock")
NEGATIVE_PHRASES = ("no", "not available", "out of stock", "don't have", "unavailable")
PARTIAL_PHRASES = ("limited", "few left", "running low", "small quantity")

PRICE_PATTERN = re.compile(r"\$(\d+(?:\.\d{2})?)")
QUANTITY_PATTERN = re.compile(r"(\d+)\s*(tablets?|pills?|bottles?|capsules?)")


def _contains_any(text: str, phrases: tuple[str, ...]) -> bool:
    return any(phrase in text for phrase in phrases)


def extract_price(text: str) -> Optional[Decimal]:
    """First dollar amount in ``text``, or None."""
    match = PRICE_PATTERN.search(text)
    return Decimal(match.group(1)) if match else None


def extract_quantity(text: str) -> Optional[str]:
    """First '<n> tablets'-style phrase in ``text``, normalized to one space."""
    match = QUANTITY_PATTERN.search(text)
    return f"{match.group(1)} {match.group(2)}" if match else None


def classify_response(text: Optional[str]) -> AvailabilityVerdict:
    """Classify a transcribed reply. Deterministic and never raises."""
    lowered = (text or "").lower()

    medication_found = False
    available = False
    confidence = Confidence.LOW
    quantity = "unknown"

    if _contains_any(lowered, POSITIVE_PHRASES):
        available, confidence, medication_found = True, Confidence.HIGH, True

    # Negative overrides positive on conflict.
    if _contains_any(lowered, NEGATIVE_PHRASES):
        available, confidence, medication_found = False, Confidence.HIGH, True

    # Partial overrides both.
    if _contains_any(lowered, PARTIAL_PHRASES):
        available, confidence, medication_found = True, Confidence.MEDIUM, True
        quantity = "limited"

    extracted = extract_quantity(lowered)
    if extracted:
        quantity = extracted

    return AvailabilityVerdict(
        medication_found=medication_found,
        available=available,
        confidence=confidence,
        quantity=quantity,
        price=extract_price(lowered),
    )
