"""Tests for the rider dispatch engine."""

import random

import pytest

from fulfillment.config import Settings
from fulfillment.models import Coordinates, DeliveryProfile, Rider
from fulfillment.services.dispatch import DispatchEngine

SHOP = Coordinates(lat=12.9716, lng=77.5946)

# One km of latitude in degrees.
KM = 1 / 111.1949


def rider(
    rider_id: str,
    km_north: float,
    location_updated_at: int = 0,
    updated_at: int = 0,
    is_online: bool = True,
    assigned_order_id: str | None = None,
) -> Rider:
    return Rider(
        id=rider_id,
        user_id=f"user_{rider_id}",
        name=f"Rider {rider_id}",
        phone=f"+91{rider_id}",
        current_location=Coordinates(lat=SHOP.lat + km_north * KM, lng=SHOP.lng),
        is_online=is_online,
        is_busy=assigned_order_id is not None,
        assigned_order_id=assigned_order_id,
        location_updated_at=location_updated_at,
        updated_at=updated_at,
    )


@pytest.fixture
def engine() -> DispatchEngine:
    return DispatchEngine(Settings())


class _Order:
    id = "order_1"


def test_nearest_recent_rider_wins_and_far_rider_excluded(engine: DispatchEngine) -> None:
    pool = [
        rider("a", 1.0, location_updated_at=1_000),
        rider("b", 1.0, location_updated_at=2_000),
        rider("c", 5.0, location_updated_at=3_000),
    ]

    ranked = engine.rank(pool, SHOP)
    result = engine.assign(_Order(), pool, SHOP)

    assert [r.id for _, r in ranked] == ["b", "a"]
    assert result is not None
    assert result.rider_id == "b"
    assert result.distance_to_shop_km == pytest.approx(1.0, abs=0.01)
    assert result.estimated_pickup_minutes == 3


def test_no_rider_within_radius(engine: DispatchEngine) -> None:
    assert engine.assign(_Order(), [rider("far", 5.0)], SHOP) is None


def test_offline_and_busy_riders_are_skipped(engine: DispatchEngine) -> None:
    pool = [
        rider("offline", 0.2, is_online=False),
        rider("busy", 0.3, assigned_order_id="other_order"),
        rider("free", 2.0),
    ]

    result = engine.assign(_Order(), pool, SHOP)

    assert result is not None
    assert result.rider_id == "free"


def test_empty_pool(engine: DispatchEngine) -> None:
    assert engine.assign(_Order(), [], SHOP) is None


def test_choice_independent_of_pool_order(engine: DispatchEngine) -> None:
    pool = [
        rider("a", 1.0, location_updated_at=5),
        rider("b", 1.0, location_updated_at=5),
        rider("c", 1.5, location_updated_at=9),
        rider("d", 2.5, location_updated_at=1),
    ]

    chosen = set()
    rng = random.Random(7)
    for _ in range(10):
        shuffled = pool[:]
        rng.shuffle(shuffled)
        chosen.add(engine.assign(_Order(), shuffled, SHOP).rider_id)

    # same distance and recency falls back to the lowest id
    assert chosen == {"a"}


def test_shop_profile_speed_used_for_pickup(engine: DispatchEngine) -> None:
    profile = DeliveryProfile(avg_rider_speed_kmph=10)

    result = engine.assign(_Order(), [rider("a", 1.0)], SHOP, profile)

    assert result.estimated_pickup_minutes == 6


def test_ranking_leaves_riders_untouched(engine: DispatchEngine) -> None:
    pool = [rider("a", 1.0), rider("b", 0.5)]
    before = [r.model_dump() for r in pool]

    engine.assign(_Order(), pool, SHOP)

    assert [r.model_dump() for r in pool] == before


def test_tie_goes_to_freshest_location_not_latest_edit(engine: DispatchEngine) -> None:
    # b toggled online after a last reported its position
    pool = [
        rider("a", 1.0, location_updated_at=2_000, updated_at=2_000),
        rider("b", 1.0, location_updated_at=1_000, updated_at=5_000),
    ]

    assert engine.assign(_Order(), pool, SHOP).rider_id == "a"
