"""Delivery time window estimation."""

import math

from pydantic import BaseModel

from fulfillment.config import Settings, get_settings
from fulfillment.models.shop import DeliveryProfile


class EtaWindow(BaseModel):
    """Promised delivery window in minutes from now."""

    min_minutes: int
    max_minutes: int
    raw_minutes: float


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return math.floor(value + 0.5)


def estimate_eta(
    distance_km: float,
    profile: DeliveryProfile,
    current_pending_orders: int,
    is_peak_hour: bool,
    settings: Settings | None = None,
) -> EtaWindow:
    """
    Estimate the delivery window for an order.

    Prep time grows by a fixed number of minutes for every pending order
    beyond what the shop can prepare in parallel. Travel time follows the
    shop's average rider speed. Peak hours add a fixed penalty. The result
    is widened by a margin on both sides and the minimum never drops below
    the configured floor.

    Args:
        distance_km: Distance the rider still has to cover
        profile: Shop delivery profile
        current_pending_orders: Orders the shop is currently working on
        is_peak_hour: Whether the estimate falls in a peak window
        settings: Tuning constants, defaults to application settings

    Returns:
        EtaWindow with rounded bounds and the unrounded estimate
    """
    settings = settings or get_settings()

    excess_orders = max(0, current_pending_orders - profile.max_parallel_orders)
    prep_minutes = profile.base_prep_minutes + excess_orders * settings.eta_excess_order_minutes

    travel_minutes = (max(0.0, distance_km) / profile.avg_rider_speed_kmph) * 60

    raw = prep_minutes + travel_minutes + profile.buffer_minutes
    if is_peak_hour:
        raw += settings.eta_peak_penalty_minutes

    return EtaWindow(
        min_minutes=max(settings.eta_floor_minutes, round_half_up(raw - settings.eta_margin_minutes)),
        max_minutes=round_half_up(raw + settings.eta_margin_minutes),
        raw_minutes=raw,
    )
