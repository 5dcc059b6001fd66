"""
HTTP surface: Twilio webhooks plus the administrative API.

Webhooks:
    POST /webhook/status            call status callbacks
    POST /webhook/recording         recording-ready callbacks
    POST /webhook/transcription     transcription callbacks
    POST /webhook/voice             TwiML script for the pharmacist
    POST /webhook/handle-response   TwiML played after the recording

Admin:
    GET  /health
    GET  /api/calls[?state=]        GET /api/calls/{id}     GET /api/calls/{id}/status
    GET  /api/pharmacies            POST /api/pharmacies
    POST /api/test/call-pharmacy    place a check call by hand
    GET  /voice-agent
"""

import asyncio
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from src.calls.errors import DestinationNotFoundError, UpstreamFailureError
from src.calls.ingress import WebhookAck, WebhookIngress
from src.calls.orchestrator import CallOrchestrator
from src.calls.runtime import get_orchestrator
from src.config import AppConfig, settings
from src.schemas.call_schema import CallState, MedicationRequest, PatientInfo
from src.tools.pharmacy_tools import TOOL_NAMES
from src.utils import utc_now

logger = logging.getLogger(__name__)

SERVICE_NAME = "pharmacy-voice-agent"


def _ack_response(ack: WebhookAck) -> JSONResponse:
    return JSONResponse(ack.body(), status_code=ack.http_status)


def _twiml(document: str) -> Response:
    return Response(content=document, media_type="application/xml")


def create_app(
    orchestrator: Optional[CallOrchestrator] = None, config: AppConfig = settings
) -> FastAPI:
    """Build the FastAPI application around an orchestrator."""
    orchestrator = orchestrator or get_orchestrator()
    ingress = WebhookIngress(
        orchestrator,
        webhook_base_url=config.telephony.webhook_base_url,
        record_timeout=config.telephony.record_timeout_sec,
        expose_errors=config.server.expose_errors,
    )

    app = FastAPI(title="Pharmacy Voice Agent")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.orchestrator = orchestrator
    app.state.ingress = ingress

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Server error on %s", request.url.path)
        return JSONResponse(
            {
                "error": "Internal server error",
                "message": str(exc) if config.server.expose_errors else "Something went wrong",
            },
            status_code=500,
        )

    @app.get("/health")
    async def health() -> dict:
        return {
            "status": "healthy",
            "timestamp": utc_now().isoformat(),
            "service": SERVICE_NAME,
            "simulated": orchestrator.provider.simulated,
        }

    # ------------------------------------------------------------------ #
    # Provider webhooks
    # ------------------------------------------------------------------ #

    @app.post("/webhook/status")
    async def status_webhook(request: Request) -> JSONResponse:
        form = await request.form()
        return _ack_response(await ingress.receive_status(dict(form)))

    @app.post("/webhook/recording")
    async def recording_webhook(request: Request) -> JSONResponse:
        form = await request.form()
        return _ack_response(await ingress.receive_recording(dict(form)))

    @app.post("/webhook/transcription")
    async def transcription_webhook(request: Request) -> JSONResponse:
        form = await request.form()
        return _ack_response(await ingress.receive_transcription(dict(form)))

    @app.api_route("/webhook/voice", methods=["GET", "POST"])
    async def voice_webhook(request: Request) -> Response:
        return _twiml(ingress.voice_script(dict(request.query_params)))

    @app.post("/webhook/handle-response")
    async def handle_response_webhook() -> Response:
        return _twiml(ingress.followup_script())

    # ------------------------------------------------------------------ #
    # Administrative API
    # ------------------------------------------------------------------ #

    @app.get("/api/calls")
    def list_calls(state: Optional[CallState] = None) -> list[dict]:
        return [s.model_dump(mode="json") for s in orchestrator.list_sessions(state)]

    @app.get("/api/calls/{call_id}")
    def get_call(call_id: str) -> JSONResponse:
        session = orchestrator.get_session(call_id)
        if session is None:
            return JSONResponse({"error": "Call not found"}, status_code=404)
        return JSONResponse(session.model_dump(mode="json"))

    @app.get("/api/calls/{call_id}/status")
    async def get_call_status(call_id: str, refresh: bool = False) -> JSONResponse:
        report = await orchestrator.get_status(call_id, refresh=refresh)
        return JSONResponse(report.model_dump(mode="json"), status_code=200 if report.found else 404)

    @app.get("/api/pharmacies")
    def list_pharmacies(
        zip_code: Optional[str] = None, category: Optional[str] = None
    ) -> list[dict]:
        if zip_code is None and category is None:
            pharmacies = orchestrator.directory.list_all()
        else:
            pharmacies = orchestrator.directory.find_destinations(zip_code, category or "general")
        return [p.model_dump(mode="json") for p in pharmacies]

    @app.post("/api/pharmacies")
    async def add_pharmacy(request: Request) -> JSONResponse:
        payload = await request.json()
        if not isinstance(payload, dict):
            return JSONResponse({"error": "Failed to add pharmacy"}, status_code=400)
        try:
            pharmacy = await asyncio.to_thread(orchestrator.directory.add, payload)
        except ValidationError as exc:
            return JSONResponse(
                {"error": "Failed to add pharmacy", "details": exc.errors(include_url=False)},
                status_code=400,
            )
        return JSONResponse(pharmacy.model_dump(mode="json"), status_code=201)

    @app.post("/api/test/call-pharmacy")
    async def test_call_pharmacy(request: Request) -> JSONResponse:
        body = await request.json()
        if not isinstance(body, dict):
            body = {}
        pharmacy_id = body.get("pharmacyId")
        medication_name = body.get("medicationName")
        if not pharmacy_id or not medication_name:
            return JSONResponse(
                {"error": "Missing required fields: pharmacyId and medicationName"},
                status_code=400,
            )

        try:
            patient = body.get("patientInfo")
            med_request = MedicationRequest(
                medication_name=medication_name,
                dosage=body.get("dosage"),
                quantity=body.get("quantity"),
                patient_info=PatientInfo.model_validate(patient) if patient else None,
            )
        except ValidationError as exc:
            return JSONResponse(
                {"error": "Invalid request", "details": exc.errors(include_url=False)},
                status_code=400,
            )

        try:
            result = await orchestrator.initiate_check(pharmacy_id, med_request)
        except DestinationNotFoundError as exc:
            return JSONResponse({"error": "Pharmacy not found", "message": str(exc)}, status_code=404)
        except UpstreamFailureError as exc:
            return JSONResponse(
                {"error": "Failed to initiate call to pharmacy", "message": str(exc)},
                status_code=502,
            )
        return JSONResponse({"success": True, **result.model_dump(mode="json")})

    @app.get("/voice-agent")
    async def voice_agent() -> dict:
        return {
            "message": "Voice agent endpoint",
            "agent": config.agent_name,
            "instructions": "Run `python main.py dev` to connect through LiveKit",
            "tools": TOOL_NAMES,
        }

    return app
