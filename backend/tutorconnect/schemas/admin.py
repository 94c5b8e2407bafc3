"""Admin verification and dashboard schemas."""

from datetime import datetime
from typing import List

from pydantic import Field

from .base import Money, StandardizedModel, StrictRequestModel


class VerifyTutorRequest(StrictRequestModel):
    # Free-form so unknown actions reach the workflow and get INVALID_ACTION
    tutor_id: str = Field(..., min_length=1, max_length=26)
    action: str = Field(..., max_length=32)


class MessageResponse(StandardizedModel):
    message: str


class RecentActivity(StandardizedModel):
    description: str
    timestamp: datetime


class AdminStatsResponse(StandardizedModel):
    total_users: int
    total_tutors: int
    total_earnings: Money
    pending_verifications: int
    active_sessions: int
    recent_activity: List[RecentActivity]
