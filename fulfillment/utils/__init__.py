"""Utility modules."""

from fulfillment.utils.clock import Clock, SystemClock
from fulfillment.utils.ids import OrderNumberGenerator, new_record_id
from fulfillment.utils.logging import TransitionLogger, get_logger, setup_logging
from fulfillment.utils.time import is_peak_hour

__all__ = [
    "Clock",
    "SystemClock",
    "OrderNumberGenerator",
    "new_record_id",
    "TransitionLogger",
    "get_logger",
    "setup_logging",
    "is_peak_hour",
]
