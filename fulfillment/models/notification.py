"""Notification records emitted by order transitions."""

from enum import Enum
from typing import Annotated, ClassVar, Literal, Union

from pydantic import BaseModel, Field

from fulfillment.models.base import Money, Record
from fulfillment.models.order import OrderStatus, PaymentStatus


class NotificationType(str, Enum):
    """Notification categories."""

    ORDER_UPDATE = "order_update"
    DELIVERY = "delivery"
    PAYMENT = "payment"
    SYSTEM = "system"


class OrderUpdateData(BaseModel):
    kind: Literal["order_update"] = "order_update"
    order_id: str
    order_number: str
    status: OrderStatus


class DeliveryData(BaseModel):
    kind: Literal["delivery"] = "delivery"
    order_id: str
    rider_id: str | None = None
    status: OrderStatus


class PaymentData(BaseModel):
    kind: Literal["payment"] = "payment"
    order_id: str
    payment_status: PaymentStatus
    amount: Money


class SystemData(BaseModel):
    kind: Literal["system"] = "system"
    detail: str


NotificationData = Annotated[
    Union[OrderUpdateData, DeliveryData, PaymentData, SystemData],
    Field(discriminator="kind"),
]


class Notification(Record):
    """Write-once notification for a single user."""

    table: ClassVar[str] = "notifications"
    indexes: ClassVar[tuple[str, ...]] = ("user_id",)

    user_id: str
    type: NotificationType
    title: str
    message: str
    data: NotificationData | None = None
    is_read: bool = False
    is_sent: bool = False
