"""Errors raised by the call orchestrator."""


class CallCheckError(Exception):
    """Base class for failures surfaced to callers of the orchestrator."""


class DestinationNotFoundError(CallCheckError):
    def __init__(self, destination_id: str) -> None:
        super().__init__(f"Pharmacy with ID {destination_id} not found")
        self.destination_id = destination_id


class UpstreamFailureError(CallCheckError):
    """The telephony provider failed while placing or inspecting a call."""
