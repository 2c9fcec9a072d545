# services/stats_service.py
import logging
import uuid
from datetime import datetime

from sqlalchemy.orm import Session

from models.reminder import Reminder
from models.user_stats import UserStats

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
PRIORITY_RANK = {"low": 1, "medium": 2, "high": 3}


def _time_of_day(hour: int) -> str:
    if 5 <= hour <= 11:
        return "morning"
    if 12 <= hour <= 16:
        return "afternoon"
    if 17 <= hour <= 21:
        return "evening"
    return "night"


def get_or_create(db: Session, user_id: uuid.UUID) -> UserStats:
    """
    ユーザーの統計レコードを取得、無ければ 0 初期化で作成
    """
    stats = db.query(UserStats).filter(UserStats.user_id == user_id).first()
    if stats is None:
        stats = UserStats(user_id=user_id)
        db.add(stats)
        db.commit()
        db.refresh(stats)
        logger.info("created user stats for %s", user_id)
    return stats


def update_completion_stats(
    db: Session,
    user_id: uuid.UUID,
    on_time: bool,
    now: datetime | None = None,
    duration_hours: float | None = None,
) -> UserStats:
    stats = get_or_create(db, user_id)
    stats.update_completion_stats(on_time, now=now, duration_hours=duration_hours)
    db.commit()
    db.refresh(stats)
    return stats


def update_tag_preferences(db: Session, user_id: uuid.UUID, tags: list[str]) -> UserStats:
    stats = get_or_create(db, user_id)
    if tags:
        stats.update_tag_preferences(tags)
        db.commit()
        db.refresh(stats)
    return stats


def _bump(db: Session, user_id: uuid.UUID, field: str) -> UserStats:
    stats = get_or_create(db, user_id)
    setattr(stats, field, (getattr(stats, field) or 0) + 1)
    db.commit()
    db.refresh(stats)
    return stats


def record_created(db: Session, user_id: uuid.UUID) -> UserStats:
    return _bump(db, user_id, "created_count")


def record_snoozed(db: Session, user_id: uuid.UUID) -> UserStats:
    return _bump(db, user_id, "snoozed_count")


def record_deleted(db: Session, user_id: uuid.UUID) -> UserStats:
    return _bump(db, user_id, "deleted_count")


def refresh_patterns(db: Session, user_id: uuid.UUID) -> UserStats:
    """
    完了済みリマインダーから時間帯・曜日・タグ別の傾向を再計算する
    - most_productive_day / most_productive_time: 完了が最多の曜日・時間帯
    - consistency_score: 最多曜日への集中度（0-100）
    - category_performance: タグごとの完了率
    """
    stats = get_or_create(db, user_id)
    reminders = db.query(Reminder).filter(Reminder.user_id == user_id).all()
    done = [r for r in reminders if r.completed and r.completed_at]

    weekday_counts = {name: 0 for name in WEEKDAY_NAMES}
    time_counts = {"morning": 0, "afternoon": 0, "evening": 0, "night": 0}
    for r in done:
        weekday_counts[WEEKDAY_NAMES[r.completed_at.weekday()]] += 1
        time_counts[_time_of_day(r.completed_at.hour)] += 1

    if done:
        stats.most_productive_day = max(weekday_counts, key=weekday_counts.get)
        stats.most_productive_time = max(time_counts, key=time_counts.get)
        stats.consistency_score = round(weekday_counts[stats.most_productive_day] / len(done) * 100, 1)
    else:
        stats.most_productive_day = None
        stats.most_productive_time = None
        stats.consistency_score = 0

    by_tag: dict[str, list[Reminder]] = {}
    for r in reminders:
        for tag in r.tags or []:
            by_tag.setdefault(tag, []).append(r)

    performance = []
    for tag, items in by_tag.items():
        completed = sum(1 for r in items if r.completed)
        avg_rank = sum(PRIORITY_RANK.get(r.priority, 2) for r in items) / len(items)
        performance.append({
            "tag": tag,
            "completion_rate": round(completed / len(items) * 100, 1),
            "average_priority": min(PRIORITY_RANK, key=lambda p: abs(PRIORITY_RANK[p] - avg_rank)),
            "count": len(items),
        })
    performance.sort(key=lambda p: p["count"], reverse=True)
    stats.category_performance = performance

    db.commit()
    db.refresh(stats)
    return stats
