from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from uuid import UUID

from auth.deps import get_current_user, require_role
from db.database import get_db
from models.user import User
from schemas.buddy import BuddyCreate, BuddyUpdate, BuddyResponse
from services import buddy_service

router = APIRouter(
    prefix="/buddies",
    tags=["Buddies"],
)


@router.get("/default")
def get_default_buddies(db: Session = Depends(get_db)):
    """
    既定バディ + 公開バディ一覧（ログイン不要）
    """
    buddies = buddy_service.list_default_buddies(db)
    return {
        "success": True,
        "count": len(buddies),
        "data": [BuddyResponse.model_validate(b) for b in buddies],
    }


@router.get("/{buddy_id}")
def get_buddy(buddy_id: UUID, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    buddy = buddy_service.get_buddy(db, buddy_id, user)
    return {"success": True, "data": BuddyResponse.model_validate(buddy)}


@router.post("/", status_code=201)
def create_buddy(payload: BuddyCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    buddy = buddy_service.create_buddy(db, user, payload)
    return {"success": True, "data": BuddyResponse.model_validate(buddy)}


@router.put("/{buddy_id}")
def update_buddy(
    buddy_id: UUID,
    payload: BuddyUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    buddy = buddy_service.update_buddy(db, buddy_id, user, payload)
    return {"success": True, "data": BuddyResponse.model_validate(buddy)}


@router.put("/{buddy_id}/default")
def make_default_buddy(
    buddy_id: UUID,
    db: Session = Depends(get_db),
    user: User = Depends(require_role("admin")),
):
    """
    既定バディを切り替える（管理者のみ）
    """
    buddy = buddy_service.make_default(db, buddy_id)
    return {"success": True, "data": BuddyResponse.model_validate(buddy)}
