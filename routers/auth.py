from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from auth.deps import get_current_user
from db.database import get_db
from models.user import User
from schemas.buddy import BuddyResponse
from schemas.user import (
    RegisterRequest,
    LoginRequest,
    ForgotPasswordRequest,
    ResetPasswordRequest,
    UpdateDetailsRequest,
    UpdatePasswordRequest,
    UserResponse,
    MeResponse,
)
from services import auth_service, buddy_service

# ここで /auth プレフィックスを付ける
router = APIRouter(
    prefix="/auth",
    tags=["Auth"],
)


def _token_response(user: User, token: str):
    return {
        "success": True,
        "token": token,
        "data": UserResponse.model_validate(user),
    }


@router.post("/register")
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    user, token = auth_service.register(db, payload.name, payload.email, payload.password)
    return _token_response(user, token)


@router.post("/login")
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user, token = auth_service.login(db, payload.email, payload.password)
    return _token_response(user, token)


@router.get("/logout")
def logout(user: User = Depends(get_current_user)):
    # トークンはステートレスなのでクライアント側で破棄する
    return {"success": True, "message": "Logged out successfully", "data": {}}


@router.get("/me")
def get_me(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """
    現在ログイン中のユーザー情報（担当バディ込み）
    """
    buddy = buddy_service.get_user_buddy(db, user)
    data = MeResponse.model_validate(user)
    data.default_buddy = BuddyResponse.model_validate(buddy) if buddy else None
    return {"success": True, "data": data}


@router.get("/verify-email/{token}")
def verify_email(token: str, db: Session = Depends(get_db)):
    auth_service.verify_email(db, token)
    return {"success": True, "message": "Email verified successfully", "data": {}}


@router.post("/forgot-password")
def forgot_password(payload: ForgotPasswordRequest, db: Session = Depends(get_db)):
    auth_service.forgot_password(db, payload.email)
    return {"success": True, "message": "Email sent", "data": {}}


@router.put("/reset-password/{token}")
def reset_password(token: str, payload: ResetPasswordRequest, db: Session = Depends(get_db)):
    user, new_token = auth_service.reset_password(db, token, payload.password)
    return _token_response(user, new_token)


@router.put("/update-details")
def update_details(
    payload: UpdateDetailsRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    user = auth_service.update_details(db, user, name=payload.name, email=payload.email)
    return {"success": True, "data": UserResponse.model_validate(user)}


@router.put("/update-password")
def update_password(
    payload: UpdatePasswordRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    user, token = auth_service.update_password(db, user, payload.current_password, payload.new_password)
    return _token_response(user, token)
