from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from auth.deps import get_current_user
from db.database import get_db
from models.user import User
from schemas.buddy import BuddyResponse
from schemas.reminder import ReminderAnalytics
from schemas.user import ProfileUpdate, UserBuddyUpdate, UserResponse, UserStatsResponse
from services import buddy_service, reminder_service, stats_service

router = APIRouter(
    prefix="/users",
    tags=["Users"],
)


@router.get("/profile")
def get_profile(user: User = Depends(get_current_user)):
    return {"success": True, "data": UserResponse.model_validate(user)}


@router.put("/profile")
def update_profile(
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if payload.name is not None:
        user.name = payload.name.strip()
    if payload.preferences is not None:
        # 既存の設定に上書きマージ
        user.preferences = {**(user.preferences or {}), **payload.preferences}
    db.commit()
    db.refresh(user)
    return {"success": True, "data": UserResponse.model_validate(user)}


@router.get("/buddy")
def get_user_buddy(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    buddy = buddy_service.get_user_buddy(db, user)
    return {"success": True, "data": BuddyResponse.model_validate(buddy) if buddy else None}


@router.put("/buddy")
def update_user_buddy(
    payload: UserBuddyUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    buddy = buddy_service.assign_to_user(db, user, payload.buddy_id)
    return {"success": True, "data": BuddyResponse.model_validate(buddy)}


@router.get("/stats")
def get_user_stats(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """
    統計を取得（無ければ作成）。時間帯・タグ傾向はここで再計算する
    """
    stats = stats_service.refresh_patterns(db, user.user_id)
    return {"success": True, "data": UserStatsResponse.model_validate(stats)}


@router.get("/dashboard-stats")
def get_dashboard_stats(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    stats = stats_service.get_or_create(db, user.user_id)
    week = reminder_service.get_analytics(db, user, "7days")
    return {
        "success": True,
        "data": {
            "week": ReminderAnalytics(**week),
            "streak_length": stats.streak_length,
            "longest_streak": stats.longest_streak,
            "completed_total": stats.completed_total,
            "top_tags": (stats.preferred_tags or [])[:5],
            "greeting": buddy_service.message_for_user(db, user, "greeting"),
        },
    }
