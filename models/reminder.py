from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, JSON, Uuid, Index
from sqlalchemy.orm import validates
from db.database import Base
from services.dates import utcnow, add_months
from services.errors import ValidationError
from datetime import datetime, timedelta
import uuid

PRIORITIES = ("low", "medium", "high")
FREQUENCIES = ("daily", "weekly", "monthly", "custom")
RESPONSES = ("completed", "snoozed", "dismissed")
HISTORY_ACTIONS = ("created", "updated", "completed", "snoozed", "reopened")


class Reminder(Base):
    __tablename__ = "reminders"
    __table_args__ = (Index("ix_reminders_user_due", "user_id", "due_date"),)

    reminder_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.user_id"), nullable=False)
    title = Column(String(100), nullable=False)
    description = Column(String(500))
    due_date = Column(DateTime, nullable=False)
    priority = Column(String, default="medium")  # low / medium / high
    completed = Column(Boolean, default=False)
    completed_at = Column(DateTime, nullable=True)

    # 繰り返し設定
    is_recurring = Column(Boolean, default=False)
    frequency = Column(String, default="daily")
    custom_pattern = Column(String, nullable=True)
    recurrence_end = Column(DateTime, nullable=True)

    tags = Column(JSON, default=list)
    notifications = Column(JSON, default=list)   # [{"time": iso, "sent": bool}]
    user_responses = Column(JSON, default=list)  # [{"response", "timestamp", "note"}]
    history = Column(JSON, default=list)         # [{"action", "timestamp", "details"}]

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @validates("user_id")
    def _validate_owner(self, key, value):
        # 所有者は作成後に変更できない
        if self.user_id is not None and value != self.user_id:
            raise ValidationError("Reminder owner cannot be changed")
        return value

    # -------------------------
    # state
    # -------------------------
    def is_overdue(self, now: datetime | None = None) -> bool:
        if self.completed:
            return False
        return self.due_date < (now or utcnow())

    def set_completed(self, completed: bool, now: datetime | None = None) -> None:
        """completed と completed_at を必ず一緒に更新する"""
        self.completed = completed
        self.completed_at = (now or utcnow()) if completed else None

    def add_history(self, action: str, details=None, now: datetime | None = None) -> None:
        entry = {"action": action, "timestamp": (now or utcnow()).isoformat(), "details": details}
        # JSON 列は再代入しないと変更検知されない
        self.history = [*(self.history or []), entry]

    def add_response(self, response: str, note: str | None = None, now: datetime | None = None) -> None:
        entry = {"response": response, "timestamp": (now or utcnow()).isoformat(), "note": note}
        self.user_responses = [*(self.user_responses or []), entry]

    # -------------------------
    # recurrence
    # -------------------------
    def get_next_occurrence(self) -> datetime | None:
        """
        次回の期限を返す。繰り返し無し・終了日超過なら None
        """
        if not self.is_recurring:
            return None

        if self.frequency == "daily":
            next_due = self.due_date + timedelta(days=1)
        elif self.frequency == "weekly":
            next_due = self.due_date + timedelta(days=7)
        elif self.frequency == "monthly":
            next_due = add_months(self.due_date, 1)
        else:
            raise ValidationError("Custom recurrence patterns are not supported")

        if self.recurrence_end and next_due > self.recurrence_end:
            return None

        return next_due
