# services/reminder_service.py
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from models.reminder import Reminder
from models.user import User
from schemas.reminder import ReminderCreate, ReminderUpdate
from services import stats_service
from services.dates import utcnow, to_naive_utc, get_zone, local_to_utc, utc_to_local, day_bounds, at_nine, add_months
from services.errors import ValidationError, NotFoundError, AuthorizationError

logger = logging.getLogger(__name__)

SNOOZE_DURATIONS = ("15min", "1hour", "3hours", "tomorrow", "nextweek")

PERIOD_DAYS = {"7days": 7, "30days": 30, "90days": 90}

# ソート可能な列（旧フロントの camelCase も受け付ける）
SORT_FIELDS = {
    "due_date": Reminder.due_date,
    "dueDate": Reminder.due_date,
    "created_at": Reminder.created_at,
    "createdAt": Reminder.created_at,
    "updated_at": Reminder.updated_at,
    "updatedAt": Reminder.updated_at,
    "completed_at": Reminder.completed_at,
    "completedAt": Reminder.completed_at,
    "priority": Reminder.priority,
    "title": Reminder.title,
    "completed": Reminder.completed,
}


@dataclass
class ReminderFilters:
    completed: bool | None = None
    priority: str | None = None
    tag: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    today: bool = False
    overdue: bool = False
    sort: str = "due_date"
    order: str = "asc"
    limit: int = 100
    tz: str | None = None


# -------------------------
# ownership
# -------------------------
def get_owned(db: Session, reminder_id: uuid.UUID, user: User) -> Reminder:
    """
    id で取得し、所有者を確認する
    - 無い: NotFoundError
    - 他人のもの: AuthorizationError（中身は返さない）
    """
    reminder = db.query(Reminder).filter(Reminder.reminder_id == reminder_id).first()
    if reminder is None:
        raise NotFoundError(f"Reminder not found with id of {reminder_id}")
    if reminder.user_id != user.user_id:
        logger.warning("user %s tried to access reminder %s", user.user_id, reminder_id)
        raise AuthorizationError("User not authorized to access this reminder")
    return reminder


# -------------------------
# list
# -------------------------
def list_reminders(db: Session, user: User, filters: ReminderFilters, now: datetime | None = None) -> list[Reminder]:
    now = now or utcnow()
    zone = get_zone(filters.tz)

    sort_col = SORT_FIELDS.get(filters.sort)
    if sort_col is None:
        raise ValidationError(f"Invalid sort field: {filters.sort}")
    if filters.order not in ("asc", "desc"):
        raise ValidationError(f"Invalid sort order: {filters.order}")

    q = db.query(Reminder).filter(Reminder.user_id == user.user_id)

    completed = filters.completed
    due_from: datetime | None = None
    due_to: datetime | None = None
    due_before: datetime | None = None

    if filters.date_from is not None:
        d = filters.date_from
        due_from = to_naive_utc(d) if d.tzinfo else local_to_utc(d, zone)

    if filters.date_to is not None:
        # to は指定日の終わり (23:59:59.999) まで含む
        d = filters.date_to
        day = utc_to_local(to_naive_utc(d), zone).date() if d.tzinfo else d.date()
        due_to = day_bounds(day, zone)[1]

    # today / overdue は日付条件を上書きする
    if filters.today:
        due_from, due_to = day_bounds(utc_to_local(now, zone).date(), zone)

    if filters.overdue:
        due_from, due_to = None, None
        due_before = now
        completed = False

    if completed is not None:
        q = q.filter(Reminder.completed == completed)
    if filters.priority:
        q = q.filter(Reminder.priority == filters.priority)
    if due_from is not None:
        q = q.filter(Reminder.due_date >= due_from)
    if due_to is not None:
        q = q.filter(Reminder.due_date <= due_to)
    if due_before is not None:
        q = q.filter(Reminder.due_date < due_before)

    q = q.order_by(sort_col.desc() if filters.order == "desc" else sort_col.asc())

    if not filters.tag:
        return q.limit(filters.limit).all()

    # tags は JSON 列なので DB 非依存にするためアプリ側で絞り込む
    items = [r for r in q.all() if filters.tag in (r.tags or [])]
    return items[: filters.limit]


# -------------------------
# create / update / delete
# -------------------------
def create_reminder(db: Session, user: User, data: ReminderCreate, now: datetime | None = None) -> Reminder:
    now = now or utcnow()
    reminder = Reminder(
        user_id=user.user_id,
        title=data.title,
        description=data.description,
        due_date=to_naive_utc(data.due_date),
        priority=data.priority,
        completed=False,
        completed_at=None,
        is_recurring=data.recurring.is_recurring,
        frequency=data.recurring.frequency,
        custom_pattern=data.recurring.custom_pattern,
        recurrence_end=to_naive_utc(data.recurring.end_date),
        tags=list(data.tags),
        notifications=[{"time": to_naive_utc(n.time).isoformat(), "sent": n.sent} for n in data.notifications],
        user_responses=[],
        history=[],
        created_at=now,
        updated_at=now,
    )
    reminder.add_history("created", now=now)
    db.add(reminder)
    db.commit()
    db.refresh(reminder)

    stats_service.record_created(db, user.user_id)
    stats_service.update_tag_preferences(db, user.user_id, reminder.tags or [])
    return reminder


def update_reminder(
    db: Session,
    reminder_id: uuid.UUID,
    user: User,
    data: ReminderUpdate,
    now: datetime | None = None,
) -> Reminder:
    now = now or utcnow()
    reminder = get_owned(db, reminder_id, user)
    fields = data.model_dump(exclude_unset=True)

    if data.title is not None:
        reminder.title = data.title
    if data.description is not None:
        reminder.description = data.description
    if data.due_date is not None:
        reminder.due_date = to_naive_utc(data.due_date)
    if data.priority is not None:
        reminder.priority = data.priority
    if data.tags is not None:
        reminder.tags = list(data.tags)
    if data.recurring is not None:
        reminder.is_recurring = data.recurring.is_recurring
        reminder.frequency = data.recurring.frequency
        reminder.custom_pattern = data.recurring.custom_pattern
        reminder.recurrence_end = to_naive_utc(data.recurring.end_date)
    if data.notifications is not None:
        reminder.notifications = [
            {"time": to_naive_utc(n.time).isoformat(), "sent": n.sent} for n in data.notifications
        ]

    reminder.add_history("updated", details={"fields": sorted(fields)}, now=now)
    reminder.updated_at = now

    # completed の変更は toggle と同じ経路を通す
    if data.completed is not None and data.completed != bool(reminder.completed):
        if data.completed:
            _complete(db, reminder, user, note=None, now=now)
        else:
            _reopen(reminder, now=now)

    db.commit()
    db.refresh(reminder)
    return reminder


def delete_reminder(db: Session, reminder_id: uuid.UUID, user: User) -> None:
    reminder = get_owned(db, reminder_id, user)
    db.delete(reminder)
    db.commit()
    stats_service.record_deleted(db, user.user_id)


# -------------------------
# complete / snooze
# -------------------------
def _complete(db: Session, reminder: Reminder, user: User, note: str | None, now: datetime) -> Reminder | None:
    """
    完了にして統計を更新する。繰り返しなら次回分を作成して返す
    """
    reminder.set_completed(True, now=now)
    on_time = now <= reminder.due_date
    details = {"on_time": on_time}

    next_reminder = None
    already_spawned = any(
        (h.get("details") or {}).get("next_reminder_id") for h in (reminder.history or [])
    )
    next_due = reminder.get_next_occurrence()
    if next_due is not None and not already_spawned:
        next_reminder = Reminder(
            user_id=reminder.user_id,
            title=reminder.title,
            description=reminder.description,
            due_date=next_due,
            priority=reminder.priority,
            completed=False,
            is_recurring=True,
            frequency=reminder.frequency,
            custom_pattern=reminder.custom_pattern,
            recurrence_end=reminder.recurrence_end,
            tags=list(reminder.tags or []),
            notifications=[],
            user_responses=[],
            history=[],
            created_at=now,
            updated_at=now,
        )
        next_reminder.add_history("created", details={"previous_reminder_id": str(reminder.reminder_id)}, now=now)
        db.add(next_reminder)
        db.flush()
        details["next_reminder_id"] = str(next_reminder.reminder_id)

    reminder.add_history("completed", details=details, now=now)
    reminder.add_response("completed", note=note, now=now)
    reminder.updated_at = now

    duration = None
    if reminder.created_at is not None:
        duration = max((now - reminder.created_at).total_seconds(), 0) / 3600
    db.commit()

    stats_service.update_completion_stats(db, user.user_id, on_time, now=now, duration_hours=duration)
    if next_reminder is not None:
        stats_service.record_created(db, user.user_id)
    return next_reminder


def _reopen(reminder: Reminder, now: datetime) -> None:
    reminder.set_completed(False, now=now)
    reminder.add_history("reopened", now=now)
    reminder.updated_at = now


def toggle_complete(
    db: Session,
    reminder_id: uuid.UUID,
    user: User,
    note: str | None = None,
    now: datetime | None = None,
) -> tuple[Reminder, Reminder | None]:
    now = now or utcnow()
    reminder = get_owned(db, reminder_id, user)

    next_reminder = None
    if reminder.completed:
        _reopen(reminder, now=now)
    else:
        next_reminder = _complete(db, reminder, user, note=note, now=now)

    db.commit()
    db.refresh(reminder)
    if next_reminder is not None:
        db.refresh(next_reminder)
    return reminder, next_reminder


def compute_snooze_due(duration: str | None, now: datetime, tz: str | None = None) -> datetime:
    """
    スヌーズ後の期限を計算する（now は UTC naive）
    - 15min / 1hour / 3hours: 現在時刻から加算
    - tomorrow / nextweek: ローカル日付で翌日 / 7日後の 09:00:00.000
    """
    if not duration:
        raise ValidationError("Please provide a snooze duration")

    if duration == "15min":
        return now + timedelta(minutes=15)
    if duration == "1hour":
        return now + timedelta(hours=1)
    if duration == "3hours":
        return now + timedelta(hours=3)
    if duration == "tomorrow":
        return at_nine(now, 1, get_zone(tz))
    if duration == "nextweek":
        return at_nine(now, 7, get_zone(tz))

    raise ValidationError("Invalid snooze duration")


def snooze(
    db: Session,
    reminder_id: uuid.UUID,
    user: User,
    duration: str | None,
    note: str | None = None,
    tz: str | None = None,
    now: datetime | None = None,
) -> Reminder:
    now = now or utcnow()
    reminder = get_owned(db, reminder_id, user)

    # 不正な duration ならここで例外になり、レコードは変更されない
    new_due = compute_snooze_due(duration, now, tz)

    previous_due = reminder.due_date
    reminder.due_date = new_due
    reminder.add_history(
        "snoozed",
        details={"duration": duration, "from": previous_due.isoformat(), "to": new_due.isoformat()},
        now=now,
    )
    reminder.add_response("snoozed", note=note, now=now)
    reminder.updated_at = now
    db.commit()
    db.refresh(reminder)

    stats_service.record_snoozed(db, user.user_id)
    return reminder


# -------------------------
# analytics
# -------------------------
def period_window(period: str, now: datetime) -> tuple[datetime, datetime]:
    if period in PERIOD_DAYS:
        return now - timedelta(days=PERIOD_DAYS[period]), now
    if period == "year":
        return add_months(now, -12), now
    raise ValidationError(f"Invalid period: {period}")


def get_analytics(db: Session, user: User, period: str = "30days", now: datetime | None = None) -> dict:
    """
    期間内 [start, now] に期限があるリマインダーを集計する
    - upcoming は未完了かつ (now, now + 期間長] に期限があるもの
    """
    now = now or utcnow()
    start, end = period_window(period, now)
    horizon = now + (end - start)

    reminders = (
        db.query(Reminder)
        .filter(
            Reminder.user_id == user.user_id,
            Reminder.due_date >= start,
            Reminder.due_date <= horizon,
        )
        .all()
    )

    in_window = [r for r in reminders if r.due_date <= end]
    completed = sum(1 for r in in_window if r.completed)
    overdue = sum(1 for r in in_window if r.is_overdue(now))
    upcoming = sum(1 for r in reminders if r.due_date > now and not r.completed)

    total = len(in_window)
    return {
        "period": period,
        "start": start,
        "end": end,
        "total": total,
        "completed": completed,
        "overdue": overdue,
        "upcoming": upcoming,
        "completion_rate": (completed / total) if total > 0 else 0.0,
    }
