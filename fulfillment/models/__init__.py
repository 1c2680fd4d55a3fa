"""Data models for the fulfillment core."""

from fulfillment.models.base import Money, Record
from fulfillment.models.location import Address, Coordinates
from fulfillment.models.notification import (
    DeliveryData,
    Notification,
    NotificationData,
    NotificationType,
    OrderUpdateData,
    PaymentData,
    SystemData,
)
from fulfillment.models.order import (
    Order,
    OrderItem,
    OrderStatus,
    OrderTotals,
    PaymentStatus,
)
from fulfillment.models.rider import Rider
from fulfillment.models.shop import DeliveryProfile, Product, Shop

__all__ = [
    # Base
    "Money",
    "Record",
    # Location
    "Address",
    "Coordinates",
    # Notification
    "DeliveryData",
    "Notification",
    "NotificationData",
    "NotificationType",
    "OrderUpdateData",
    "PaymentData",
    "SystemData",
    # Order
    "Order",
    "OrderItem",
    "OrderStatus",
    "OrderTotals",
    "PaymentStatus",
    # Rider
    "Rider",
    # Shop
    "DeliveryProfile",
    "Product",
    "Shop",
]
