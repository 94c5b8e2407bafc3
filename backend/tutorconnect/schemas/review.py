"""Review request schema; responses reuse ``ReviewOut`` from the tutor schemas."""

from typing import Optional

from pydantic import Field

from .base import StrictRequestModel


class ReviewCreate(StrictRequestModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)
