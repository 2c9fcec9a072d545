# schemas/buddy.py
from pydantic import BaseModel, Field, model_validator
from datetime import datetime
from typing import Optional, List, Literal
from uuid import UUID

Personality = Literal["helper", "motivator", "organizer", "cheerleader", "coach", "zen", "custom"]


class BuddyMessages(BaseModel):
    greeting: List[str] = Field(default_factory=list)
    reminder: List[str] = Field(default_factory=list)
    encouragement: List[str] = Field(default_factory=list)
    completion: List[str] = Field(default_factory=list)
    overdue: List[str] = Field(default_factory=list)
    inactivity: List[str] = Field(default_factory=list)


class AdaptiveBehavior(BaseModel):
    user_style: Literal["verbose", "concise", "casual", "formal", "auto-detect"] = "auto-detect"
    adapt_to_time_of_day: bool = True
    adapt_to_completion: bool = True
    adapt_to_mood: bool = False


class BuddyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    personality: Personality = "helper"
    custom_traits: List[str] = Field(default_factory=list)
    avatar_url: Optional[str] = None
    default_messages: BuddyMessages = BuddyMessages()
    adaptive_behavior: AdaptiveBehavior = AdaptiveBehavior()
    is_default: bool = False
    is_public: bool = False

    @model_validator(mode="after")
    def _custom_needs_traits(self):
        if self.personality == "custom" and not self.custom_traits:
            raise ValueError("Custom traits are required for custom personality")
        return self


class BuddyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    personality: Optional[Personality] = None
    custom_traits: Optional[List[str]] = None
    avatar_url: Optional[str] = None
    default_messages: Optional[BuddyMessages] = None
    adaptive_behavior: Optional[AdaptiveBehavior] = None
    is_default: Optional[bool] = None
    is_public: Optional[bool] = None


class BuddyResponse(BaseModel):
    buddy_id: UUID
    name: str
    personality: str
    custom_traits: List[str]
    avatar_url: Optional[str]
    default_messages: BuddyMessages
    adaptive_behavior: AdaptiveBehavior
    is_default: bool
    is_public: bool
    creator_id: Optional[UUID]
    user_count: int
    completion_rate: float
    rating: float
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True  # pydantic v2
