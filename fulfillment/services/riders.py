"""Rider profile management.

Riders report their own location and online status. The busy flag and the
assigned order belong to the order lifecycle and are never changed here.
"""

from fulfillment.models.location import Coordinates
from fulfillment.models.rider import Rider
from fulfillment.state.store import RecordStore, Transaction
from fulfillment.utils.clock import Clock
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)


class RiderService:
    """Registers riders and records what their app reports."""

    def __init__(self, store: RecordStore, clock: Clock):
        self.store = store
        self.clock = clock

    async def register_rider(
        self,
        user_id: str,
        name: str,
        phone: str,
        location: Coordinates,
    ) -> Rider:
        """Create an offline, idle rider. Phone numbers are unique."""
        now = self.clock.now_ms()
        rider = Rider(
            user_id=user_id,
            name=name,
            phone=phone,
            current_location=location,
            location_updated_at=now,
            created_at=now,
            updated_at=now,
        )
        await self.store.insert(rider)

        logger.info("rider_registered", rider_id=rider.id, user_id=user_id)
        return rider

    async def get_rider(self, rider_id: str) -> Rider | None:
        return await self.store.get(Rider, rider_id)

    async def get_rider_by_phone(self, phone: str) -> Rider | None:
        return await self.store.find_unique(Rider, "phone", phone)

    async def update_location(self, rider_id: str, location: Coordinates) -> Rider:
        async def op(txn: Transaction) -> Rider:
            rider = await txn.require(Rider, rider_id, "rider")
            rider.current_location = location
            rider.updated_at = self.clock.now_ms()
            rider.location_updated_at = rider.updated_at
            txn.put(rider)
            return rider

        return await self.store.transaction(op)

    async def set_online(self, rider_id: str, is_online: bool) -> Rider:
        async def op(txn: Transaction) -> Rider:
            rider = await txn.require(Rider, rider_id, "rider")
            rider.is_online = is_online
            rider.updated_at = self.clock.now_ms()
            txn.put(rider)
            return rider

        rider = await self.store.transaction(op)
        logger.info("rider_online_changed", rider_id=rider_id, is_online=is_online)
        return rider

    async def list_all_riders(self) -> list[Rider]:
        """Every registered rider, online ones first."""
        return [
            *await self.store.query(Rider, "is_online", True),
            *await self.store.query(Rider, "is_online", False),
        ]

    async def list_online_riders(self) -> list[Rider]:
        return await self.store.query(Rider, "is_online", True)

    async def list_available_riders(self) -> list[Rider]:
        """Online riders without an active assignment."""
        return [rider for rider in await self.list_online_riders() if not rider.is_busy]
