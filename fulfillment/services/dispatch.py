"""Rider dispatch: choose who picks up an order."""

from collections.abc import Iterable

from pydantic import BaseModel

from fulfillment.config import Settings, get_settings
from fulfillment.models.location import Coordinates
from fulfillment.models.order import Order
from fulfillment.models.rider import Rider
from fulfillment.models.shop import DeliveryProfile
from fulfillment.services.eta import round_half_up
from fulfillment.services.geo import haversine_km
from fulfillment.utils.logging import TransitionLogger


class DispatchResult(BaseModel):
    """Advisory rider choice for an order."""

    rider_id: str
    rider_name: str
    distance_to_shop_km: float
    estimated_pickup_minutes: int


class DispatchEngine:
    """
    Ranks candidate riders for an order.

    Only online, idle riders within the dispatch radius of the shop are
    eligible. The closest wins; equal distances go to the rider whose
    location was reported most recently, then to the lowest rider id so
    the same pool always yields the same choice. The engine never mutates
    riders: the caller applies the choice through the order lifecycle.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.logger = TransitionLogger("dispatch_engine")

    def rank(
        self,
        candidates: Iterable[Rider],
        shop_location: Coordinates,
    ) -> list[tuple[float, Rider]]:
        """Eligible riders with their distance to the shop, best first."""
        eligible = []
        for rider in candidates:
            if not rider.is_available:
                continue

            distance_km = haversine_km(rider.current_location, shop_location)
            if distance_km > self.settings.dispatch_radius_km:
                continue

            eligible.append((distance_km, rider))

        eligible.sort(key=lambda pair: (pair[0], -pair[1].location_updated_at, pair[1].id))
        return eligible

    def assign(
        self,
        order: Order,
        candidates: Iterable[Rider],
        shop_location: Coordinates,
        profile: DeliveryProfile | None = None,
    ) -> DispatchResult | None:
        """
        Pick the best rider for an order.

        Args:
            order: Order awaiting a rider
            candidates: Rider pool to choose from
            shop_location: Where the order is picked up
            profile: Shop delivery profile; its rider speed overrides the default

        Returns:
            DispatchResult, or None when no rider qualifies
        """
        candidates = list(candidates)
        ranked = self.rank(candidates, shop_location)

        if not ranked:
            self.logger.log_dispatch(order.id, None, len(candidates))
            return None

        distance_km, rider = ranked[0]
        speed_kmph = profile.avg_rider_speed_kmph if profile else self.settings.default_rider_speed_kmph

        result = DispatchResult(
            rider_id=rider.id,
            rider_name=rider.name,
            distance_to_shop_km=round(distance_km, 2),
            estimated_pickup_minutes=round_half_up(distance_km / speed_kmph * 60),
        )

        self.logger.log_dispatch(
            order.id,
            rider.id,
            len(candidates),
            eligible=len(ranked),
            distance_to_shop_km=result.distance_to_shop_km,
        )
        return result
