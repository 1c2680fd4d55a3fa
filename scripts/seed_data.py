"""Seed a demo shop, its products and a rider pool."""

import asyncio
from decimal import Decimal

from fulfillment.models import Address, Coordinates, DeliveryProfile, Product, Shop
from fulfillment.services import RiderService
from fulfillment.state.manager import StateManager
from fulfillment.state.store import RecordStore
from fulfillment.utils.clock import SystemClock

SHOP_LOCATION = Coordinates(lat=12.9716, lng=77.5946)


async def seed_shop(store: RecordStore, now: int) -> Shop:
    """Seed the demo shop and its catalogue."""
    print("Seeding shop and products...")

    shop = Shop(
        owner_id="owner_demo",
        name="Corner Kirana",
        address=Address(
            street="12 MG Road",
            city="Bengaluru",
            pincode="560001",
            state="Karnataka",
            coordinates=SHOP_LOCATION,
        ),
        delivery_profile=DeliveryProfile(
            base_prep_minutes=5,
            max_parallel_orders=3,
            buffer_minutes=5,
            avg_rider_speed_kmph=20,
        ),
        created_at=now,
        updated_at=now,
    )
    await store.insert(shop)
    print(f"  ✓ Added {shop.name} ({shop.id})")

    catalogue = [
        ("Toned Milk 1L", "58.00", 40),
        ("Brown Bread", "45.00", 25),
        ("Eggs (12)", "84.00", 30),
        ("Basmati Rice 5kg", "620.00", 10),
        ("Filter Coffee 250g", "180.00", 0),
    ]

    for name, price, stock in catalogue:
        product = Product(
            shop_id=shop.id,
            name=name,
            price=Decimal(price),
            stock_quantity=stock,
            is_available=stock > 0,
            created_at=now,
            updated_at=now,
        )
        await store.insert(product)
        print(f"  ✓ Added {product.name} (stock: {product.stock_quantity})")

    print("✓ Shop seeded successfully\n")
    return shop


async def seed_riders(riders: RiderService) -> None:
    """Seed riders around the demo shop and put them online."""
    print("Seeding riders...")

    pool = [
        ("rider_user_1", "Ravi Kumar", "+919800000001", 12.9730, 77.5950),
        ("rider_user_2", "Anita Rao", "+919800000002", 12.9800, 77.6000),
        ("rider_user_3", "Imran Shaikh", "+919800000003", 12.9900, 77.6100),
        ("rider_user_4", "Deepa Nair", "+919800000004", 13.0500, 77.6500),
    ]

    for user_id, name, phone, lat, lng in pool:
        rider = await riders.register_rider(user_id, name, phone, Coordinates(lat=lat, lng=lng))
        await riders.set_online(rider.id, True)
        print(f"  ✓ Added {rider.name} ({rider.id})")

    print("✓ Riders seeded successfully\n")


async def main() -> None:
    """Run all seed functions."""
    print("\n" + "=" * 50)
    print("  Seeding Fulfillment Data")
    print("=" * 50 + "\n")

    state_manager = StateManager()
    await state_manager.connect()

    clock = SystemClock()
    store = RecordStore(state_manager)

    await seed_shop(store, clock.now_ms())
    await seed_riders(RiderService(store, clock))

    await state_manager.disconnect()

    print("=" * 50)
    print("  ✓ All data seeded successfully!")
    print("=" * 50 + "\n")


if __name__ == "__main__":
    asyncio.run(main())
