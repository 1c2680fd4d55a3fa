"""Geographic models."""

from pydantic import BaseModel, Field


class Coordinates(BaseModel):
    """Geographic location."""

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class Address(BaseModel):
    """Postal address with optional pin-point coordinates."""

    street: str
    city: str
    pincode: str
    state: str
    coordinates: Coordinates | None = None
