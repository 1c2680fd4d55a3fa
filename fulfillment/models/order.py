"""Order-related data models."""

from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, Field, model_validator

from fulfillment.models.base import Money, Record
from fulfillment.models.location import Address

# Tolerance for comparing client-computed money values.
MONEY_TOLERANCE = Decimal("0.01")


class OrderStatus(str, Enum):
    """Order status progression."""

    PENDING = "pending"
    ACCEPTED_BY_SHOPKEEPER = "accepted_by_shopkeeper"
    ASSIGNED_TO_RIDER = "assigned_to_rider"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    """Payment status, independent of delivery progress."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class OrderItem(BaseModel):
    """Individual line item, snapshotting the product at checkout."""

    product_id: str
    name: str
    price: Money = Field(ge=0)
    quantity: int = Field(ge=1)
    total_price: Money = Field(ge=0)

    @model_validator(mode="before")
    @classmethod
    def fill_total_price(cls, data: Any) -> Any:
        """Compute the line total when the caller leaves it out."""
        if isinstance(data, dict) and data.get("total_price") is None:
            if "price" in data and "quantity" in data:
                data = {
                    **data,
                    "total_price": Decimal(str(data["price"])) * int(data["quantity"]),
                }
        return data

    @model_validator(mode="after")
    def check_total_price(self) -> "OrderItem":
        expected = self.price * self.quantity
        if abs(self.total_price - expected) > MONEY_TOLERANCE:
            raise ValueError(
                f"total_price {self.total_price} does not match price x quantity ({expected})"
            )
        return self


class OrderTotals(BaseModel):
    """Checkout totals computed by the caller."""

    subtotal: Money = Field(ge=0)
    delivery_fee: Money = Field(default=Decimal("0.00"), ge=0)
    tax: Money = Field(default=Decimal("0.00"), ge=0)
    total_amount: Money = Field(ge=0)

    @model_validator(mode="after")
    def check_total_amount(self) -> "OrderTotals":
        expected = self.subtotal + self.delivery_fee + self.tax
        if abs(self.total_amount - expected) > MONEY_TOLERANCE:
            raise ValueError(
                f"total_amount {self.total_amount} does not equal "
                f"subtotal + delivery_fee + tax ({expected})"
            )
        return self


class Order(Record):
    """Complete order details."""

    table: ClassVar[str] = "orders"
    indexes: ClassVar[tuple[str, ...]] = ("user_id", "shop_id", "status")
    unique_fields: ClassVar[tuple[str, ...]] = ("order_number",)

    order_number: str
    user_id: str
    shop_id: str
    rider_id: str | None = None
    status: OrderStatus = OrderStatus.PENDING

    # Items
    items: list[OrderItem] = Field(min_length=1)

    # Pricing
    subtotal: Money = Field(ge=0)
    delivery_fee: Money = Field(default=Decimal("0.00"), ge=0)
    tax: Money = Field(default=Decimal("0.00"), ge=0)
    total_amount: Money = Field(ge=0)

    # Delivery details
    delivery_address: Address
    delivery_time: str | None = None

    # Payment
    payment_method: str
    payment_status: PaymentStatus = PaymentStatus.PENDING

    notes: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (OrderStatus.DELIVERED, OrderStatus.CANCELLED)
