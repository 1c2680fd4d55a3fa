"""Fulfillment services."""

from fulfillment.services.dispatch import DispatchEngine, DispatchResult
from fulfillment.services.eta import EtaWindow, estimate_eta, round_half_up
from fulfillment.services.geo import haversine_km
from fulfillment.services.notifier import NotificationService, Notifier
from fulfillment.services.orders import OrderItemDetail, OrderService, OrderStats
from fulfillment.services.riders import RiderService

__all__ = [
    "DispatchEngine",
    "DispatchResult",
    "EtaWindow",
    "estimate_eta",
    "round_half_up",
    "haversine_km",
    "NotificationService",
    "Notifier",
    "OrderItemDetail",
    "OrderService",
    "OrderStats",
    "RiderService",
]
