# services/auth_service.py
import logging
import os
from datetime import timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth.security import (
    hash_password,
    verify_password,
    create_access_token,
    generate_token,
    hash_token,
)
from models.user import User
from services import buddy_service, stats_service
from services.dates import utcnow
from services.errors import (
    ValidationError,
    ConflictError,
    AuthenticationError,
    NotFoundError,
    DependencyError,
)
from services.mailer import send_email

logger = logging.getLogger(__name__)

RESET_TOKEN_EXPIRE_MINUTES = int(os.getenv("RESET_TOKEN_EXPIRE_MINUTES", "10"))
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000")

INVALID_CREDENTIALS = "Invalid credentials"


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _send_verification_enabled() -> bool:
    return os.getenv("SEND_VERIFICATION_EMAIL", "false").lower() == "true"


# -------------------------
# registration steps
# -------------------------
def assign_default_buddy(db: Session, user: User) -> None:
    """既定バディがあれば新規ユーザーに割り当てる"""
    buddy = buddy_service.get_default_buddy(db)
    if buddy is None:
        return
    user.default_buddy_id = buddy.buddy_id
    buddy.user_count = (buddy.user_count or 0) + 1
    db.commit()


def issue_verification_token(db: Session, user: User) -> str:
    """平文トークンを返し、ハッシュだけ保存する"""
    token, hashed = generate_token()
    user.verification_token = hashed
    db.commit()
    return token


def send_verification_email(db: Session, user: User, token: str) -> None:
    url = f"{PUBLIC_BASE_URL}/auth/verify-email/{token}"
    try:
        send_email(
            to=user.email,
            subject="Verify Your Email",
            text=f"Please verify your email by clicking on the following link: {url}",
        )
    except DependencyError:
        # 再試行できるようにトークンを消す
        user.verification_token = None
        db.commit()
        raise


def register(db: Session, name: str, email: str, password: str) -> tuple[User, str]:
    email = _normalize_email(email)
    if db.query(User).filter(User.email == email).first():
        raise ConflictError("Email already in use")

    user = User(name=name.strip(), email=email, password_hash=hash_password(password))
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Email already in use")
    db.refresh(user)

    assign_default_buddy(db, user)
    stats_service.get_or_create(db, user.user_id)

    verification_token = issue_verification_token(db, user)
    if _send_verification_enabled():
        send_verification_email(db, user, verification_token)

    logger.info("user registered: %s", user.user_id)
    return user, create_access_token(user.user_id)


# -------------------------
# login
# -------------------------
def login(db: Session, email: str, password: str) -> tuple[User, str]:
    if not email or not password:
        raise ValidationError("Please provide an email and password")

    user = db.query(User).filter(User.email == _normalize_email(email)).first()
    # 不明メール・パスワード不一致は同じメッセージ（アカウント列挙対策）
    if user is None or not verify_password(password, user.password_hash):
        logger.info("failed login attempt")
        raise AuthenticationError(INVALID_CREDENTIALS)

    user.last_login = utcnow()
    db.commit()
    db.refresh(user)
    return user, create_access_token(user.user_id)


# -------------------------
# email verification
# -------------------------
def verify_email(db: Session, token: str) -> User:
    user = db.query(User).filter(User.verification_token == hash_token(token)).first()
    if user is None:
        raise ValidationError("Invalid verification token")

    user.is_verified = True
    user.verification_token = None
    db.commit()
    db.refresh(user)
    return user


# -------------------------
# password reset
# -------------------------
def forgot_password(db: Session, email: str) -> None:
    user = db.query(User).filter(User.email == _normalize_email(email)).first()
    if user is None:
        raise NotFoundError("There is no user with that email")

    token, hashed = generate_token()
    user.reset_password_token = hashed
    user.reset_password_expire = utcnow() + timedelta(minutes=RESET_TOKEN_EXPIRE_MINUTES)
    db.commit()

    url = f"{PUBLIC_BASE_URL}/auth/reset-password/{token}"
    try:
        send_email(
            to=user.email,
            subject="Password reset token",
            text=(
                "You are receiving this email because you (or someone else) has requested "
                f"the reset of a password. Please follow this link to reset your password: \n\n {url}"
            ),
        )
    except DependencyError:
        user.reset_password_token = None
        user.reset_password_expire = None
        db.commit()
        raise


def reset_password(db: Session, token: str, password: str) -> tuple[User, str]:
    if not token:
        raise ValidationError("Invalid token")

    user = (
        db.query(User)
        .filter(
            User.reset_password_token == hash_token(token),
            User.reset_password_expire > utcnow(),
        )
        .first()
    )
    if user is None:
        raise ValidationError("Invalid token")

    user.password_hash = hash_password(password)
    user.reset_password_token = None
    user.reset_password_expire = None
    db.commit()
    db.refresh(user)
    return user, create_access_token(user.user_id)


# -------------------------
# profile
# -------------------------
def update_details(db: Session, user: User, name: str | None = None, email: str | None = None) -> User:
    if email is not None:
        email = _normalize_email(email)
        if email != user.email and db.query(User).filter(User.email == email).first():
            raise ConflictError("Email already in use")
        user.email = email
    if name is not None:
        user.name = name.strip()

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Email already in use")
    db.refresh(user)
    return user


def update_password(db: Session, user: User, current_password: str, new_password: str) -> tuple[User, str]:
    if not verify_password(current_password, user.password_hash):
        raise AuthenticationError("Password is incorrect")

    user.password_hash = hash_password(new_password)
    db.commit()
    db.refresh(user)
    return user, create_access_token(user.user_id)
