"""Shop and product models consumed by the fulfillment core."""

from typing import ClassVar

from pydantic import BaseModel, Field

from fulfillment.models.base import Money, Record
from fulfillment.models.location import Address, Coordinates


class DeliveryProfile(BaseModel):
    """Per-shop delivery timing configuration."""

    base_prep_minutes: float = Field(default=5, ge=0)
    max_parallel_orders: int = Field(default=3, ge=1)
    buffer_minutes: float = Field(default=5, ge=0)
    avg_rider_speed_kmph: float = Field(default=20, gt=0)


class Shop(Record):
    """Shop owned by a shopkeeper."""

    table: ClassVar[str] = "shops"
    indexes: ClassVar[tuple[str, ...]] = ("owner_id",)

    owner_id: str
    name: str
    address: Address
    radius_km: float = Field(default=2.0, gt=0)
    delivery_profile: DeliveryProfile = Field(default_factory=DeliveryProfile)
    is_active: bool = True

    @property
    def location(self) -> Coordinates | None:
        return self.address.coordinates


class Product(Record):
    """Stock-bearing product listed by a shop."""

    table: ClassVar[str] = "products"
    indexes: ClassVar[tuple[str, ...]] = ("shop_id",)

    shop_id: str
    name: str
    price: Money = Field(ge=0)
    stock_quantity: int = Field(default=0, ge=0)
    is_available: bool = False

    def apply_order(self, quantity: int) -> None:
        """Take ordered units out of stock, never going below zero."""
        self.stock_quantity = max(0, self.stock_quantity - quantity)
        self.is_available = self.stock_quantity > 0
