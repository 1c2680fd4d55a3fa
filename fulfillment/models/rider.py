"""Rider models."""

from typing import ClassVar

from pydantic import model_validator

from fulfillment.models.base import Record
from fulfillment.models.location import Coordinates


class Rider(Record):
    """Delivery rider profile, one per rider user account."""

    table: ClassVar[str] = "riders"
    indexes: ClassVar[tuple[str, ...]] = ("is_online",)
    unique_fields: ClassVar[tuple[str, ...]] = ("phone", "user_id")

    user_id: str
    name: str
    phone: str
    current_location: Coordinates
    # Set only when the rider reports a position.
    location_updated_at: int = 0
    is_online: bool = False
    is_busy: bool = False
    assigned_order_id: str | None = None

    @model_validator(mode="after")
    def check_assignment(self) -> "Rider":
        if self.is_busy != (self.assigned_order_id is not None):
            raise ValueError("is_busy must be set exactly when assigned_order_id is set")
        return self

    @property
    def is_available(self) -> bool:
        """Check if rider can take a new assignment."""
        return self.is_online and not self.is_busy
