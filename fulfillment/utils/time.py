"""Time helpers for ETA calculation."""

from datetime import datetime, timedelta, timezone

from fulfillment.config import Settings


def local_hour(now_ms: int, utc_offset_minutes: int) -> int:
    """Hour of day in the marketplace's local time."""
    tz = timezone(timedelta(minutes=utc_offset_minutes))
    return datetime.fromtimestamp(now_ms / 1000, tz=tz).hour


def is_peak_hour(now_ms: int, settings: Settings) -> bool:
    """Check whether the given instant falls within the morning or evening peak."""
    hour = local_hour(now_ms, settings.utc_offset_minutes)
    return (
        settings.morning_peak_start <= hour <= settings.morning_peak_end
        or settings.evening_peak_start <= hour <= settings.evening_peak_end
    )
