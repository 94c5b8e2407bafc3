"""Favorite tutor responses; the list itself reuses ``TutorProfileResponse``."""

from .base import StandardizedModel


class FavoriteStatusResponse(StandardizedModel):
    tutor_id: str
    is_favorite: bool
    changed: bool
