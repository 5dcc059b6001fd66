from src.calls.errors import (
    CallCheckError,
    DestinationNotFoundError,
    UpstreamFailureError,
)
from src.calls.ingress import WebhookAck, WebhookIngress
from src.calls.orchestrator import CallOrchestrator
from src.calls.session_store import SessionStore
from src.calls.state_machine import (
    CallStateMachine,
    CallTrigger,
    InvalidTransitionError,
)

__all__ = [
    "CallOrchestrator",
    "CallStateMachine",
    "CallTrigger",
    "InvalidTransitionError",
    "SessionStore",
    "WebhookIngress",
    "WebhookAck",
    "CallCheckError",
    "DestinationNotFoundError",
    "UpstreamFailureError",
]
