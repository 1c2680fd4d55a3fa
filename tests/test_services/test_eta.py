"""Tests for delivery window estimation."""

from datetime import datetime, timezone

import pytest

from fulfillment.config import Settings
from fulfillment.models import DeliveryProfile
from fulfillment.services.eta import estimate_eta, round_half_up
from fulfillment.utils.time import is_peak_hour, local_hour


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def profile() -> DeliveryProfile:
    return DeliveryProfile()


def test_off_peak_window(profile: DeliveryProfile, settings: Settings) -> None:
    # prep 5 + travel 6 + buffer 5
    eta = estimate_eta(2.0, profile, 0, False, settings)

    assert eta.raw_minutes == pytest.approx(16)
    assert (eta.min_minutes, eta.max_minutes) == (11, 21)


def test_orders_beyond_capacity_add_prep_time(
    profile: DeliveryProfile,
    settings: Settings,
) -> None:
    at_capacity = estimate_eta(2.0, profile, 3, False, settings)
    over_capacity = estimate_eta(2.0, profile, 5, False, settings)

    assert at_capacity.raw_minutes == pytest.approx(16)
    assert over_capacity.raw_minutes == pytest.approx(20)


def test_peak_hour_adds_penalty(profile: DeliveryProfile, settings: Settings) -> None:
    eta = estimate_eta(2.0, profile, 0, True, settings)

    assert (eta.min_minutes, eta.max_minutes) == (16, 26)


def test_minimum_never_below_floor(settings: Settings) -> None:
    profile = DeliveryProfile(base_prep_minutes=0, buffer_minutes=0)

    eta = estimate_eta(0.0, profile, 0, False, settings)

    assert eta.min_minutes == 5
    assert eta.min_minutes <= eta.max_minutes


def test_halves_round_up(profile: DeliveryProfile, settings: Settings) -> None:
    # travel 1.5 minutes puts both bounds on .5
    eta = estimate_eta(0.5, profile, 0, False, settings)

    assert (eta.min_minutes, eta.max_minutes) == (7, 17)


def test_shop_speed_changes_travel_time(settings: Settings) -> None:
    slow = DeliveryProfile(avg_rider_speed_kmph=10)

    eta = estimate_eta(2.0, slow, 0, False, settings)

    assert eta.raw_minutes == pytest.approx(22)


def test_same_inputs_same_window(profile: DeliveryProfile, settings: Settings) -> None:
    assert estimate_eta(3.7, profile, 4, True, settings) == estimate_eta(
        3.7, profile, 4, True, settings
    )


def test_round_half_up() -> None:
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.49) == 2


def _ms(year: int, month: int, day: int, hour: int, minute: int = 0) -> int:
    return int(datetime(year, month, day, hour, minute, tzinfo=timezone.utc).timestamp() * 1000)


def test_local_hour_applies_offset() -> None:
    # 02:30 UTC is 08:00 at +05:30
    assert local_hour(_ms(2024, 5, 1, 2, 30), 330) == 8


@pytest.mark.parametrize(
    "utc_hour, utc_minute, expected",
    [
        (1, 30, True),  # 07:00 local
        (4, 59, True),  # 10:29 local
        (5, 30, False),  # 11:00 local
        (12, 30, True),  # 18:00 local
        (16, 59, True),  # 22:29 local
        (17, 30, False),  # 23:00 local
        (22, 0, False),  # 03:30 local
    ],
)
def test_peak_hours(utc_hour: int, utc_minute: int, expected: bool, settings: Settings) -> None:
    assert is_peak_hour(_ms(2024, 5, 1, utc_hour, utc_minute), settings) is expected
