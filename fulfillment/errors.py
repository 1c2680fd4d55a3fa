"""Error taxonomy surfaced by the fulfillment core."""

from typing import Any


class FulfillmentError(Exception):
    """Base class for user-displayable fulfillment failures."""

    code = "fulfillment_error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message}


class NotFoundError(FulfillmentError, LookupError):
    """Referenced order, rider, shop or product does not exist."""

    code = "not_found"
    status_code = 404

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity.capitalize()} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class UnauthorizedError(FulfillmentError, PermissionError):
    """Actor may not act on the referenced shop or order."""

    code = "unauthorized"
    status_code = 403


class InvalidTransitionError(FulfillmentError, ValueError):
    """Current status does not permit the requested transition."""

    code = "invalid_transition"
    status_code = 409

    def __init__(self, event: str, current_status: str):
        super().__init__(f"Cannot {event} order with status '{current_status}'")
        self.event = event
        self.current_status = current_status

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["current_status"] = self.current_status
        return data


class PreconditionFailedError(FulfillmentError, ValueError):
    """A record referenced by the transition is not in a usable state."""

    code = "precondition_failed"
    status_code = 412


class ConcurrencyConflictError(FulfillmentError):
    """Optimistic transaction kept losing to concurrent writers."""

    code = "concurrency_conflict"
    status_code = 409
