"""
Offline console demo: runs a full pharmacy check call without any API keys.

Uses the real orchestrator, state machine, classifier, and JSON storage
against the simulated telephony provider, in a throwaway data directory.
No LLM, no LiveKit, no Twilio, no network calls.

Usage:
    python console_demo.py
    python console_demo.py --scenario out_of_stock
    python console_demo.py --scenario no_answer --medication "Amoxicillin"
"""

import argparse
import asyncio
import dataclasses
import sys
import tempfile
from typing import Optional

from src.calls.runtime import build_orchestrator
from src.config import settings
from src.prompts.prompt_templates import build_availability_summary
from src.tools import pharmacy_tools
from src.tools.pickup import schedule_medication_pickup
from src.tools.telephony import CANNED_TRANSCRIPT, SimulatedTelephonyProvider

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

# scenario -> (pharmacist's reply, final call status)
SCENARIOS: dict[str, tuple[str, str]] = {
    "in_stock": (CANNED_TRANSCRIPT, "completed"),
    "out_of_stock": ("Sorry, that one is out of stock until next week.", "completed"),
    "limited": ("We have a limited supply, about 12 tablets left at $8.50.", "completed"),
    "no_answer": ("", "no-answer"),
}


def agent_say(text: str) -> None:
    print(f"{GREEN}{BOLD}[PharmacyAgent]{RESET} {GREEN}{text}{RESET}")


def system_log(text: str) -> None:
    print(f"{DIM}  >> {text}{RESET}")


async def run_scenario(
    scenario: str,
    medication: str,
    dosage: Optional[str],
    zip_code: str,
    delay_sec: float,
) -> bool:
    """Play one scenario end to end. Returns False for an unknown scenario."""
    if scenario not in SCENARIOS:
        print(f"{RED}Unknown scenario: {scenario}{RESET}")
        return False
    transcript, final_status = SCENARIOS[scenario]

    print()
    print(f"{BOLD}{'=' * 60}{RESET}")
    print(f"{BOLD}  PHARMACY CHECK CALL - Scenario: {scenario}{RESET}")
    print(f"{BOLD}  Agent: {settings.agent_name}{RESET}")
    print(f"{BOLD}{'=' * 60}{RESET}")
    print()

    with tempfile.TemporaryDirectory() as data_dir:
        config = dataclasses.replace(
            settings,
            storage=dataclasses.replace(
                settings.storage, data_dir=data_dir, sessions_file="", pharmacies_file="",
            ),
        )
        provider = SimulatedTelephonyProvider(
            delay_sec=delay_sec, transcript=transcript, final_status=final_status,
        )
        orchestrator = build_orchestrator(config, provider=provider)

        print(f"{BLUE}[Patient] {RESET}Can you check if a pharmacy near {zip_code} has {medication}?")
        found = pharmacy_tools.find_pharmacies(orchestrator, zip_code)
        system_log(f"find_pharmacies -> {found['found']} matches")
        if not found["pharmacies"]:
            agent_say("I couldn't find a pharmacy in that area.")
            return True
        pharmacy = found["pharmacies"][0]
        agent_say(f"I found {pharmacy['name']} at {pharmacy['address']}. Let me give them a call.")

        placed = await pharmacy_tools.check_medication_availability(
            orchestrator, pharmacy["id"], medication, dosage=dosage,
        )
        if not placed["success"]:
            agent_say(f"{placed['message']}.")
            return True
        call_id = placed["call_id"]
        system_log(f"Call placed: {call_id}")
        agent_say(f"I'm calling now. This usually takes {placed['estimated_wait_time']}.")

        early = await pharmacy_tools.check_call_status(orchestrator, call_id, refresh=False)
        system_log(f"check_call_status -> {early['status']}")

        await provider.drain()

        final = await pharmacy_tools.check_call_status(orchestrator, call_id, refresh=True)
        system_log(f"check_call_status -> {final['status']} ({final['message']})")
        if final["pharmacy_response"]:
            print(f"{YELLOW}  [Pharmacist] {final['pharmacy_response']}{RESET}")

        if final["status"] == "completed":
            agent_say(build_availability_summary(pharmacy["name"], medication, final["verdict"]))
            verdict = final["verdict"]
            if verdict and verdict["available"]:
                print(f"{BLUE}[Patient] {RESET}Yes, I'll pick it up at 5 PM today.")
                pickup = schedule_medication_pickup(
                    pharmacy["id"], medication, "5:00 PM today", "Jane Doe", "+15550101234",
                )
                agent_say(f"{pickup['message']}. {pickup['reminder']}")
        else:
            agent_say("I couldn't get through to the pharmacy. Would you like me to try another one?")

        session = orchestrator.get_session(call_id)
        stocked = orchestrator.directory.get(pharmacy["id"])

        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Scenario '{scenario}' complete.{RESET}")
        if session is not None:
            print(f"{DIM}  State trace: {' -> '.join(session.state_trace())}{RESET}")
        if stocked is not None and stocked.inventory:
            for name, record in stocked.inventory.items():
                print(
                    f"{DIM}  Inventory: {name} available={record.available} "
                    f"quantity={record.quantity} price={record.price}{RESET}"
                )
        print(f"{BOLD}{'=' * 60}{RESET}")
    return True


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Offline pharmacy check call demo")
    parser.add_argument("--scenario", default="in_stock", choices=sorted(SCENARIOS))
    parser.add_argument("--medication", default="Lisinopril")
    parser.add_argument("--dosage", default="10mg")
    parser.add_argument("--zip-code", default="10001")
    parser.add_argument("--delay", type=float, default=0.5, help="seconds before the pharmacy answers")
    args = parser.parse_args(argv)

    ok = asyncio.run(
        run_scenario(args.scenario, args.medication, args.dosage, args.zip_code, args.delay)
    )
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
