"""Spoken summaries built from tool results."""

from typing import Optional


def build_pharmacy_options_prompt(pharmacies: list[dict]) -> str:
    """List matching pharmacies so the patient can pick one."""
    if not pharmacies:
        return (
            "No pharmacies matched that area and medication type. "
            "Ask the patient for a different zip code."
        )
    lines = ["These pharmacies can be called. Offer them to the patient:"]
    for p in pharmacies[:5]:
        lines.append(f"  {p['name']} (ID {p['id']}), {p['address']}, open {p['hours']}")
    lines.append("\nAsk which pharmacy they would like you to call.")
    return "\n".join(lines)


def build_availability_summary(
    pharmacy_name: str,
    medication_name: str,
    verdict: Optional[dict],
) -> str:
    """Turn a classified pharmacy answer into one spoken sentence."""
    if verdict is None:
        return (
            f"{pharmacy_name} answered, but it was not clear whether they have "
            f"{medication_name}. Offer to call again or try another pharmacy."
        )

    quantity = verdict.get("quantity") or "unknown"
    price = verdict.get("price")

    if not verdict.get("available"):
        return (
            f"{pharmacy_name} does not have {medication_name} right now. "
            "Offer to check another pharmacy nearby."
        )
    if verdict.get("confidence") == "medium":
        sentence = f"{pharmacy_name} has limited stock of {medication_name}"
    else:
        sentence = f"Good news, {pharmacy_name} has {medication_name} in stock"

    if quantity not in ("unknown", "limited"):
        sentence += f", about {quantity}"
    if price:
        sentence += f", at {price} dollars"
    return sentence + ". Ask if they would like to schedule a pickup."
