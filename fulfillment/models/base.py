"""Shared building blocks for stored records."""

from decimal import Decimal
from typing import Annotated, ClassVar

from pydantic import BaseModel, Field, PlainSerializer

from fulfillment.utils.ids import new_record_id

# Money is exact in memory and a plain JSON number on the wire.
Money = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]


class Record(BaseModel):
    """
    A document persisted by the record store.

    Subclasses name their table and the fields the store indexes:
    ``indexes`` are non-unique lookups ordered by ``created_at``,
    ``unique_fields`` map one value to one record.
    """

    table: ClassVar[str] = ""
    indexes: ClassVar[tuple[str, ...]] = ()
    unique_fields: ClassVar[tuple[str, ...]] = ()

    id: str = Field(default_factory=new_record_id)
    created_at: int = 0
    updated_at: int = 0
