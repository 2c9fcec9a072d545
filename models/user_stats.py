from sqlalchemy import Column, String, Integer, Float, DateTime, ForeignKey, JSON, Uuid
from sqlalchemy.orm import validates
from db.database import Base
from services.dates import utcnow
from datetime import datetime, timedelta
import uuid

STREAK_WINDOW = timedelta(hours=24)

# 0〜100 に丸めるスコア系の列
SCORE_FIELDS = (
    "consistency_score",
    "interaction_rate",
    "responsiveness",
    "procrastination_index",
    "adaptability_score",
    "personalization_level",
)


def clamp_score(value) -> float:
    if value is None:
        return 0
    return max(0, min(100, value))


class UserStats(Base):
    __tablename__ = "user_stats"

    stats_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.user_id"), unique=True, nullable=False)

    # reminder stats
    completed_total = Column(Integer, default=0)
    completed_on_time = Column(Integer, default=0)
    completed_late = Column(Integer, default=0)
    created_count = Column(Integer, default=0)
    snoozed_count = Column(Integer, default=0)
    deleted_count = Column(Integer, default=0)
    average_completion_time = Column(Float, default=0)  # 時間
    preferred_tags = Column(JSON, default=list)  # [{"name": str, "count": int}] count 降順

    # time patterns
    most_productive_day = Column(String, nullable=True)   # Monday .. Sunday
    most_productive_time = Column(String, nullable=True)  # morning / afternoon / evening / night
    consistency_score = Column(Float, default=0)

    category_performance = Column(JSON, default=list)

    # buddy interaction
    preferred_buddy_id = Column(Uuid, nullable=True)
    interaction_rate = Column(Float, default=0)
    responsiveness = Column(Float, default=0)
    preferred_message_style = Column(String, nullable=True)

    # user behavior
    streak_length = Column(Integer, default=0)
    longest_streak = Column(Integer, default=0)
    last_active = Column(DateTime, nullable=True)
    average_session_duration = Column(Float, default=0)  # 分
    procrastination_index = Column(Float, default=50)
    adaptability_score = Column(Float, default=50)

    # recommendations
    suggested_times = Column(JSON, default=list)
    suggested_buddy_type = Column(String, nullable=True)
    suggested_message_style = Column(String, nullable=True)
    personalization_level = Column(Float, default=0)

    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @validates(*SCORE_FIELDS)
    def _clamp(self, key, value):
        return clamp_score(value)

    def update_completion_stats(
        self,
        on_time: bool,
        now: datetime | None = None,
        duration_hours: float | None = None,
    ) -> None:
        """
        完了数を加算し、連続日数(streak)を更新する
        - 前回の活動から24時間以内なら +1、それ以外は 1 にリセット
        """
        now = now or utcnow()

        self.completed_total = (self.completed_total or 0) + 1
        if on_time:
            self.completed_on_time = (self.completed_on_time or 0) + 1
        else:
            self.completed_late = (self.completed_late or 0) + 1

        # 完了までの時間は移動平均で持つ
        if duration_hours is not None:
            prev = self.average_completion_time or 0
            self.average_completion_time = prev + (duration_hours - prev) / self.completed_total

        if self.last_active is not None and abs(now - self.last_active) <= STREAK_WINDOW:
            self.streak_length = (self.streak_length or 0) + 1
        else:
            self.streak_length = 1

        self.longest_streak = max(self.longest_streak or 0, self.streak_length)
        self.last_active = now

    def update_tag_preferences(self, tags: list[str]) -> None:
        if not tags:
            return

        prefs = [dict(t) for t in (self.preferred_tags or [])]
        for tag in tags:
            existing = next((t for t in prefs if t["name"] == tag), None)
            if existing:
                existing["count"] += 1
            else:
                prefs.append({"name": tag, "count": 1})

        # sort は安定なので同数なら先に出てきた順
        prefs.sort(key=lambda t: t["count"], reverse=True)
        self.preferred_tags = prefs
