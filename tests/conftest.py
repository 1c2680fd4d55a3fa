"""Pytest configuration and fixtures."""

import random
from decimal import Decimal
from typing import Any, AsyncGenerator, Awaitable, Callable

import fakeredis
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from fulfillment.api.routes import get_clock, get_order_numbers, get_store
from fulfillment.main import app
from fulfillment.models import (
    Address,
    Coordinates,
    Order,
    Product,
    Rider,
    Shop,
)
from fulfillment.services import (
    NotificationService,
    Notifier,
    OrderService,
    RiderService,
)
from fulfillment.state.manager import StateManager
from fulfillment.state.store import RecordStore
from fulfillment.utils.ids import OrderNumberGenerator

# 2023-11-14 22:13:20 UTC, 03:43 in the marketplace's local time (off-peak).
START_MS = 1_700_000_000_000

SHOP_LOCATION = Coordinates(lat=12.9716, lng=77.5946)
CUSTOMER_LOCATION = Coordinates(lat=12.9352, lng=77.6245)


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, now_ms: int = START_MS):
        self.current = now_ms

    def now_ms(self) -> int:
        return self.current

    def advance(self, ms: int) -> None:
        self.current += ms


@pytest_asyncio.fixture
async def redis_client() -> AsyncGenerator[fakeredis.FakeAsyncRedis, None]:
    """In-process Redis, isolated per test."""
    client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def state_manager(
    redis_client: fakeredis.FakeAsyncRedis,
) -> AsyncGenerator[StateManager, None]:
    """Create a test state manager."""
    yield StateManager(redis_client)


@pytest.fixture
def store(state_manager: StateManager) -> RecordStore:
    return RecordStore(state_manager)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def order_numbers(clock: FixedClock) -> OrderNumberGenerator:
    return OrderNumberGenerator(clock, rng=random.Random(42))


@pytest.fixture
def notifier(store: RecordStore, clock: FixedClock) -> Notifier:
    return Notifier(store, clock)


@pytest.fixture
def order_service(
    store: RecordStore,
    notifier: Notifier,
    clock: FixedClock,
    order_numbers: OrderNumberGenerator,
) -> OrderService:
    return OrderService(store, notifier, clock, order_numbers)


@pytest.fixture
def rider_service(store: RecordStore, clock: FixedClock) -> RiderService:
    return RiderService(store, clock)


@pytest.fixture
def notification_service(store: RecordStore, clock: FixedClock) -> NotificationService:
    return NotificationService(store, clock)


# Sample data fixtures


@pytest.fixture
def delivery_address() -> Address:
    return Address(
        street="80 Feet Road, Koramangala",
        city="Bengaluru",
        pincode="560034",
        state="Karnataka",
        coordinates=CUSTOMER_LOCATION,
    )


@pytest_asyncio.fixture
async def shop(store: RecordStore, clock: FixedClock) -> Shop:
    """A stocked shop owned by ``owner_1``."""
    shop = Shop(
        owner_id="owner_1",
        name="Corner Kirana",
        address=Address(
            street="12 MG Road",
            city="Bengaluru",
            pincode="560001",
            state="Karnataka",
            coordinates=SHOP_LOCATION,
        ),
        created_at=clock.now_ms(),
        updated_at=clock.now_ms(),
    )
    return await store.insert(shop)


@pytest_asyncio.fixture
async def products(store: RecordStore, shop: Shop, clock: FixedClock) -> dict[str, Product]:
    """Milk (10 in stock) and bread (5 in stock)."""
    milk = Product(
        shop_id=shop.id,
        name="Toned Milk 1L",
        price=Decimal("50.00"),
        stock_quantity=10,
        is_available=True,
        created_at=clock.now_ms(),
    )
    bread = Product(
        shop_id=shop.id,
        name="Brown Bread",
        price=Decimal("40.00"),
        stock_quantity=5,
        is_available=True,
        created_at=clock.now_ms(),
    )
    await store.insert(milk)
    await store.insert(bread)
    return {"milk": milk, "bread": bread}


@pytest.fixture
def make_rider(
    rider_service: RiderService,
    clock: FixedClock,
) -> Callable[..., Awaitable[Rider]]:
    """Register a rider at a location, online unless told otherwise."""
    counter = {"n": 0}

    async def factory(lat: float, lng: float, online: bool = True, name: str | None = None) -> Rider:
        counter["n"] += 1
        n = counter["n"]
        rider = await rider_service.register_rider(
            user_id=f"rider_user_{n}",
            name=name or f"Rider {n}",
            phone=f"+91980000{n:04d}",
            location=Coordinates(lat=lat, lng=lng),
        )
        if online:
            rider = await rider_service.set_online(rider.id, True)
        return rider

    return factory


def order_payload(products: dict[str, Product], milk: int = 2, bread: int = 1) -> dict[str, Any]:
    """Items and matching totals for an order of milk and bread."""
    items = []
    if milk:
        items.append(
            {
                "product_id": products["milk"].id,
                "name": products["milk"].name,
                "price": "50.00",
                "quantity": milk,
            }
        )
    if bread:
        items.append(
            {
                "product_id": products["bread"].id,
                "name": products["bread"].name,
                "price": "40.00",
                "quantity": bread,
            }
        )
    subtotal = Decimal("50.00") * milk + Decimal("40.00") * bread
    return {
        "items": items,
        "totals": {
            "subtotal": subtotal,
            "delivery_fee": Decimal("20.00"),
            "tax": Decimal("5.00"),
            "total_amount": subtotal + Decimal("25.00"),
        },
    }


@pytest.fixture
def place_order(
    order_service: OrderService,
    shop: Shop,
    products: dict[str, Product],
    delivery_address: Address,
) -> Callable[..., Awaitable[Order]]:
    """Place an order of milk and bread for ``customer_1``."""

    async def factory(milk: int = 2, bread: int = 1, user_id: str = "customer_1") -> Order:
        payload = order_payload(products, milk, bread)
        return await order_service.create_order(
            user_id=user_id,
            shop_id=shop.id,
            items=payload["items"],
            totals=payload["totals"],
            delivery_address=delivery_address,
            payment_method="upi",
        )

    return factory


@pytest_asyncio.fixture
async def test_client(
    store: RecordStore,
    clock: FixedClock,
    order_numbers: OrderNumberGenerator,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client over the app, wired to the in-process store."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_order_numbers] = lambda: order_numbers

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
