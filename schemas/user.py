# schemas/user.py
from pydantic import BaseModel, Field, AliasChoices
from datetime import datetime
from typing import Optional, Dict, Any, List
from uuid import UUID

from schemas.buddy import BuddyResponse

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=6)


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    password: str = Field(..., min_length=6)


class UpdateDetailsRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    email: Optional[str] = Field(None, pattern=EMAIL_PATTERN)


class UpdatePasswordRequest(BaseModel):
    current_password: str = Field(..., validation_alias=AliasChoices("current_password", "currentPassword"))
    new_password: str = Field(
        ..., min_length=6, validation_alias=AliasChoices("new_password", "newPassword")
    )


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    preferences: Optional[Dict[str, Any]] = None


class UserBuddyUpdate(BaseModel):
    buddy_id: UUID = Field(..., validation_alias=AliasChoices("buddy_id", "buddyId"))


class UserResponse(BaseModel):
    user_id: UUID
    name: str
    email: str
    role: str
    is_verified: bool
    default_buddy_id: Optional[UUID]
    preferences: Optional[Dict[str, Any]]
    last_login: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True


class MeResponse(UserResponse):
    default_buddy: Optional[BuddyResponse] = None


class TagCount(BaseModel):
    name: str
    count: int


class UserStatsResponse(BaseModel):
    user_id: UUID
    completed_total: int
    completed_on_time: int
    completed_late: int
    created_count: int
    snoozed_count: int
    deleted_count: int
    average_completion_time: float
    preferred_tags: List[TagCount]
    most_productive_day: Optional[str]
    most_productive_time: Optional[str]
    consistency_score: float
    category_performance: List[Dict[str, Any]]
    preferred_buddy_id: Optional[UUID]
    interaction_rate: float
    responsiveness: float
    preferred_message_style: Optional[str]
    streak_length: int
    longest_streak: int
    last_active: Optional[datetime]
    average_session_duration: float
    procrastination_index: float
    adaptability_score: float
    suggested_times: List[Any]
    suggested_buddy_type: Optional[str]
    suggested_message_style: Optional[str]
    personalization_level: float
    updated_at: datetime

    class Config:
        from_attributes = True
