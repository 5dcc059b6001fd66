"""Wiring of directory, session store, provider, and orchestrator from configuration."""

import logging
from typing import Optional

from src.calls.orchestrator import CallOrchestrator
from src.calls.session_store import SessionStore
from src.config import AppConfig, settings
from src.storage.json_store import JsonCollection
from src.tools.directory import SEED_PHARMACIES, PharmacyDirectory
from src.tools.telephony import TelephonyProvider, create_provider

logger = logging.getLogger(__name__)

_orchestrator: Optional[CallOrchestrator] = None


def build_orchestrator(
    config: AppConfig = settings, provider: Optional[TelephonyProvider] = None
) -> CallOrchestrator:
    """Create a fully wired orchestrator over the configured data files."""
    directory = PharmacyDirectory(
        JsonCollection(config.storage.pharmacies_path), seed=SEED_PHARMACIES,
    )
    store = SessionStore(JsonCollection(config.storage.sessions_path))
    return CallOrchestrator(
        directory,
        store,
        provider or create_provider(config.telephony),
        estimated_wait=config.telephony.estimated_wait,
    )


def get_orchestrator() -> CallOrchestrator:
    """Process-wide orchestrator, built on first use."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = build_orchestrator()
        purged = _orchestrator.purge_sessions(settings.storage.retention_days)
        if purged:
            logger.info("Purged %d call sessions older than %d days", purged, settings.storage.retention_days)
        logger.info("Call orchestrator ready")
    return _orchestrator
