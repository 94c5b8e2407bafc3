"""
Base schemas shared by every request and response DTO.

The public API speaks camelCase; Python code uses snake_case attributes.
"""

from datetime import time
from decimal import Decimal
import re
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

# Money is kept as Decimal internally and serialized as a JSON number.
Money = Annotated[
    Decimal,
    PlainSerializer(lambda value: float(value), return_type=float, when_used="json"),
]


def parse_hhmm(value: object) -> time:
    """Parse a strict 24h "HH:MM" string into a ``time``."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    if not isinstance(value, str):
        raise ValueError("Time must be a string in HH:MM format")
    match = _HHMM.match(value.strip())
    if not match:
        raise ValueError("Time must be in HH:MM format")
    return time(int(match.group(1)), int(match.group(2)))


class StandardizedModel(BaseModel):
    """Response base: camelCase output, reads ORM attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        use_enum_values=True,
    )


class StrictRequestModel(BaseModel):
    """Request DTO base that always forbids unexpected fields."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        validate_assignment=True,
        str_strip_whitespace=True,
    )
