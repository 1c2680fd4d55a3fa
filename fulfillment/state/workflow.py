"""Order lifecycle state machine."""

from enum import Enum

from fulfillment.models.order import OrderStatus, PaymentStatus


class OrderEvent(str, Enum):
    """Events that move an order between statuses."""

    CREATE = "create"
    ACCEPT = "accept"
    ASSIGN_RIDER = "assign_rider"
    START_DELIVERY = "start_delivery"
    DELIVER = "deliver"
    CANCEL = "cancel"


# How each event reads in an error message: "Cannot <action> order ...".
EVENT_ACTIONS = {
    OrderEvent.CREATE: "create",
    OrderEvent.ACCEPT: "accept",
    OrderEvent.ASSIGN_RIDER: "assign a rider to",
    OrderEvent.START_DELIVERY: "start delivery of",
    OrderEvent.DELIVER: "deliver",
    OrderEvent.CANCEL: "cancel",
}


class OrderTransitions:
    """Valid order status transitions."""

    TRANSITIONS = {
        (OrderStatus.PENDING, OrderEvent.ACCEPT): OrderStatus.ACCEPTED_BY_SHOPKEEPER,
        (OrderStatus.ACCEPTED_BY_SHOPKEEPER, OrderEvent.ASSIGN_RIDER): OrderStatus.ASSIGNED_TO_RIDER,
        (OrderStatus.ASSIGNED_TO_RIDER, OrderEvent.START_DELIVERY): OrderStatus.OUT_FOR_DELIVERY,
        (OrderStatus.OUT_FOR_DELIVERY, OrderEvent.DELIVER): OrderStatus.DELIVERED,
        (OrderStatus.PENDING, OrderEvent.CANCEL): OrderStatus.CANCELLED,
        (OrderStatus.ACCEPTED_BY_SHOPKEEPER, OrderEvent.CANCEL): OrderStatus.CANCELLED,
    }

    @classmethod
    def next_status(cls, current: OrderStatus, event: OrderEvent) -> OrderStatus | None:
        """Status reached by applying ``event``, or None if not allowed."""
        return cls.TRANSITIONS.get((current, event))

    @classmethod
    def can_transition(cls, current: OrderStatus, event: OrderEvent) -> bool:
        """Check if an event is valid from the current status."""
        return (current, event) in cls.TRANSITIONS


class PaymentTransitions:
    """Valid payment status transitions."""

    TRANSITIONS = {
        PaymentStatus.PENDING: [
            PaymentStatus.PAID,
            PaymentStatus.FAILED,
            PaymentStatus.REFUNDED,
        ],
    }

    @classmethod
    def can_transition(cls, from_status: PaymentStatus, to_status: PaymentStatus) -> bool:
        """Check if a payment status transition is valid."""
        return to_status in cls.TRANSITIONS.get(from_status, [])
