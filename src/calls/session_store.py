"""
Durable call session store.

A pass-through persistence surface keyed by provider call id. It holds
no business rules: the orchestrator decides what changes, the store
only validates the record shape and writes it.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from src.schemas.call_schema import CallSession, CallState
from src.storage.json_store import JsonCollection, PersistenceError

logger = logging.getLogger(__name__)


class SessionStore:
    """CallSession records over a JsonCollection."""

    def __init__(self, collection: JsonCollection) -> None:
        self._collection = collection

    def create(self, session: CallSession) -> CallSession:
        try:
            self._collection.insert(session.model_dump(mode="json"))
        except KeyError:
            raise PersistenceError(f"Session {session.id} already exists") from None
        logger.debug("Session stored: %s", session.id)
        return session

    def get(self, session_id: str) -> Optional[CallSession]:
        record = self._collection.get(session_id)
        return CallSession.model_validate(record) if record else None

    def update(self, session_id: str, **changes: Any) -> Optional[CallSession]:
        """Apply a partial update. Returns None if the session does not exist."""

        def _merge(stored: dict) -> dict:
            current = CallSession.model_validate(stored)
            merged = current.model_copy(update=changes)
            return CallSession.model_validate(merged.model_dump()).model_dump(mode="json")

        record = self._collection.modify(session_id, _merge)
        return CallSession.model_validate(record) if record else None

    def list_all(self) -> list[CallSession]:
        return [CallSession.model_validate(r) for r in self._collection.all()]

    def list_by_state(self, state: CallState) -> list[CallSession]:
        return [s for s in self.list_all() if s.state == state]

    def purge_older_than(self, days: int) -> int:
        """Delete sessions created more than ``days`` ago. Returns the number removed."""
        cutoff = datetime.now(timezone.utc) - timedelta(days=days)

        def _expired(record: dict) -> bool:
            return CallSession.model_validate(record).created_at < cutoff

        removed = self._collection.delete_where(_expired)
        if removed:
            logger.info("Purged %d sessions older than %d days", removed, days)
        return removed
