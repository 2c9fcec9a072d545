# schemas/reminder.py
from pydantic import BaseModel, Field, AliasChoices, field_validator
from datetime import datetime
from typing import Optional, List, Literal, Any
from uuid import UUID

Priority = Literal["low", "medium", "high"]
Frequency = Literal["daily", "weekly", "monthly", "custom"]


class Recurrence(BaseModel):
    is_recurring: bool = False
    frequency: Frequency = "daily"
    custom_pattern: Optional[str] = None
    end_date: Optional[datetime] = None

    @field_validator("frequency")
    @classmethod
    def _reject_custom(cls, v):
        # パターン文法が未定義なので custom は受け付けない
        if v == "custom":
            raise ValueError("Custom recurrence patterns are not supported")
        return v


class Notification(BaseModel):
    time: datetime
    sent: bool = False


class ReminderBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    due_date: datetime
    priority: Priority = "medium"
    tags: List[str] = Field(default_factory=list)
    recurring: Recurrence = Recurrence()
    notifications: List[Notification] = Field(default_factory=list)

    # 長さチェックの前に前後の空白を落とす
    @field_validator("title", "description", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


class ReminderCreate(ReminderBase):
    pass


class ReminderUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    due_date: Optional[datetime] = None
    priority: Optional[Priority] = None
    completed: Optional[bool] = None
    tags: Optional[List[str]] = None
    recurring: Optional[Recurrence] = None
    notifications: Optional[List[Notification]] = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


class CompleteRequest(BaseModel):
    note: Optional[str] = None


class SnoozeRequest(BaseModel):
    # 旧フロントの camelCase も受け付ける
    snooze_duration: Optional[str] = Field(
        None, validation_alias=AliasChoices("snooze_duration", "snoozeDuration")
    )
    note: Optional[str] = None


class ReminderResponse(BaseModel):
    reminder_id: UUID
    user_id: UUID
    title: str
    description: Optional[str]
    due_date: datetime
    priority: str
    completed: bool
    completed_at: Optional[datetime]
    recurring: Recurrence
    tags: List[str]
    notifications: List[dict[str, Any]]
    user_responses: List[dict[str, Any]]
    history: List[dict[str, Any]]
    is_overdue: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, r) -> "ReminderResponse":
        return cls(
            reminder_id=r.reminder_id,
            user_id=r.user_id,
            title=r.title,
            description=r.description,
            due_date=r.due_date,
            priority=r.priority,
            completed=bool(r.completed),
            completed_at=r.completed_at,
            # custom はバリデータで弾かれるので model_construct で素通しする
            recurring=Recurrence.model_construct(
                is_recurring=bool(r.is_recurring),
                frequency=r.frequency or "daily",
                custom_pattern=r.custom_pattern,
                end_date=r.recurrence_end,
            ),
            tags=r.tags or [],
            notifications=r.notifications or [],
            user_responses=r.user_responses or [],
            history=r.history or [],
            is_overdue=r.is_overdue(),
            created_at=r.created_at,
            updated_at=r.updated_at,
        )


class ReminderAnalytics(BaseModel):
    period: str
    start: datetime
    end: datetime
    total: int
    completed: int
    overdue: int
    upcoming: int
    completion_rate: float  # 0.0 - 1.0
