"""
Pharmacy voice agent entry point.

Runs either the LiveKit voice agent (STT -> LLM -> TTS) or the HTTP server
that receives Twilio webhooks and exposes the call API.

Usage:
    Live voice:   python main.py dev
    HTTP server:  python main.py serve
    Console mode: python main.py console [--scenario in_stock]
"""

import logging
import sys

from src.config import settings

logger = logging.getLogger(__name__)


def _build_session():
    """Build a new AgentSession with the configured STT/LLM/TTS pipeline."""
    from livekit.agents import AgentSession
    from livekit.plugins import deepgram, openai, cartesia, silero

    from src.schemas.patient_schema import PatientSession

    return AgentSession[PatientSession](
        stt=deepgram.STT(
            model=settings.model.stt_model,
            language=settings.model.stt_language,
        ),
        llm=openai.LLM(
            model=settings.model.llm_model,
            temperature=settings.model.llm_temperature,
        ),
        tts=cartesia.TTS(
            model=settings.model.tts_model,
            voice=settings.model.tts_voice_id,
        ),
        vad=silero.VAD.load(),
        userdata=PatientSession(),
    )


async def entrypoint(ctx) -> None:
    """LiveKit agent entrypoint. Must be module-level for Windows pickling."""
    from src.agents.pharmacy_agent import PharmacyAgent

    session = _build_session()
    await session.start(room=ctx.room, agent=PharmacyAgent())
    logger.info("Voice agent session started in room: %s", ctx.room.name)


def _run_voice_mode() -> None:
    """Start the full LiveKit voice pipeline (requires API keys)."""
    from livekit.agents import WorkerOptions, cli

    worker = WorkerOptions(
        entrypoint_fnc=entrypoint,
        agent_name=settings.agent_name,
    )
    cli.run_app(worker)


def _run_server_mode() -> None:
    """Serve the webhook and admin API."""
    import uvicorn

    from src.api.app import create_app

    logger.info(
        "Pharmacy agent server on %s:%d, webhooks at %s",
        settings.server.host, settings.server.port, settings.telephony.webhook_base_url,
    )
    uvicorn.run(
        create_app(),
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.log_level.lower(),
    )


def _run_console_mode(argv: list[str]) -> None:
    """Run the offline simulated call demo (no API keys required)."""
    from console_demo import main as console_main

    console_main(argv)


if __name__ == "__main__":
    mode = sys.argv[1] if len(sys.argv) > 1 else "dev"
    if mode == "console":
        _run_console_mode(sys.argv[2:])
    elif mode == "serve":
        _run_server_mode()
    else:
        _run_voice_mode()
