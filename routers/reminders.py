# routers/reminders.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from db.database import get_db

from schemas.reminder import (
    ReminderCreate,
    ReminderUpdate,
    ReminderResponse,
    ReminderAnalytics,
    CompleteRequest,
    SnoozeRequest,
)
from auth.deps import get_current_user
from services import reminder_service, buddy_service
from services.reminder_service import ReminderFilters

from datetime import datetime
from uuid import UUID
from typing import Optional

router = APIRouter(prefix="/reminders", tags=["Reminders"])


# -------------------------
# analytics（/{reminder_id} より先に登録する）
# -------------------------
@router.get("/analytics")
def get_reminder_analytics(
    period: str = Query("30days"),
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
):
    stats = reminder_service.get_analytics(db, user, period)
    return {"success": True, "data": ReminderAnalytics(**stats)}


# -------------------------
# endpoints
# -------------------------
@router.get("/")
def get_reminders(
    completed: Optional[bool] = None,
    priority: Optional[str] = None,
    tag: Optional[str] = None,
    date_from: Optional[datetime] = Query(None, alias="from"),
    date_to: Optional[datetime] = Query(None, alias="to"),
    today: bool = False,
    overdue: bool = False,
    sort: str = "due_date",
    order: str = "asc",
    limit: int = Query(100, ge=1),
    tz: Optional[str] = None,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
):
    filters = ReminderFilters(
        completed=completed,
        priority=priority,
        tag=tag,
        date_from=date_from,
        date_to=date_to,
        today=today,
        overdue=overdue,
        sort=sort,
        order=order,
        limit=limit,
        tz=tz,
    )
    reminders = reminder_service.list_reminders(db, user, filters)
    return {
        "success": True,
        "count": len(reminders),
        "data": [ReminderResponse.from_model(r) for r in reminders],
    }


@router.post("/", status_code=201)
def create_reminder(reminder: ReminderCreate, db: Session = Depends(get_db), user=Depends(get_current_user)):
    new_reminder = reminder_service.create_reminder(db, user, reminder)
    return {"success": True, "data": ReminderResponse.from_model(new_reminder)}


@router.get("/{reminder_id}")
def get_reminder(reminder_id: UUID, db: Session = Depends(get_db), user=Depends(get_current_user)):
    reminder = reminder_service.get_owned(db, reminder_id, user)
    return {"success": True, "data": ReminderResponse.from_model(reminder)}


@router.put("/{reminder_id}")
def update_reminder(
    reminder_id: UUID,
    reminder_update: ReminderUpdate,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
):
    reminder = reminder_service.update_reminder(db, reminder_id, user, reminder_update)
    return {"success": True, "data": ReminderResponse.from_model(reminder)}


@router.delete("/{reminder_id}")
def delete_reminder(reminder_id: UUID, db: Session = Depends(get_db), user=Depends(get_current_user)):
    reminder_service.delete_reminder(db, reminder_id, user)
    return {"success": True, "data": {}}


@router.put("/{reminder_id}/complete")
def toggle_complete(
    reminder_id: UUID,
    payload: Optional[CompleteRequest] = None,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
):
    note = payload.note if payload else None
    reminder, next_reminder = reminder_service.toggle_complete(db, reminder_id, user, note=note)

    body = {"success": True, "data": ReminderResponse.from_model(reminder)}
    if reminder.completed:
        # 完了時だけバディのひとこと
        message = buddy_service.message_for_user(db, user, "completion", reminder.title)
        if message:
            body["message"] = message
    if next_reminder is not None:
        body["next"] = ReminderResponse.from_model(next_reminder)
    return body


@router.put("/{reminder_id}/snooze")
def snooze_reminder(
    reminder_id: UUID,
    payload: SnoozeRequest,
    tz: Optional[str] = None,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
):
    reminder = reminder_service.snooze(
        db, reminder_id, user, payload.snooze_duration, note=payload.note, tz=tz
    )
    body = {"success": True, "data": ReminderResponse.from_model(reminder)}
    message = buddy_service.message_for_user(db, user, "reminder", reminder.title)
    if message:
        body["message"] = message
    return body
