"""Identifier generation."""

import random
import string
from uuid import uuid4

from fulfillment.utils.clock import Clock

_BASE36 = string.digits + string.ascii_uppercase


def new_record_id() -> str:
    """Return a fresh opaque record id."""
    return uuid4().hex


class OrderNumberGenerator:
    """
    Builds human-readable order numbers.

    Format is ``{prefix}{epoch_ms}{suffix}`` where the suffix is four
    upper-case base36 characters. Pass a seeded ``random.Random`` to get a
    reproducible sequence.
    """

    def __init__(
        self,
        clock: Clock,
        prefix: str = "MM",
        rng: random.Random | None = None,
        suffix_length: int = 4,
    ):
        self.clock = clock
        self.prefix = prefix
        self.rng = rng or random.Random()
        self.suffix_length = suffix_length

    def next(self) -> str:
        suffix = "".join(self.rng.choice(_BASE36) for _ in range(self.suffix_length))
        return f"{self.prefix}{self.clock.now_ms()}{suffix}"
