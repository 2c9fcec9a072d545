import logging
import uuid

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from sqlalchemy.orm import Session

from auth.security import decode_access_token
from db.database import get_db
from models.user import User
from services.errors import AuthenticationError, AuthorizationError, NotFoundError

logger = logging.getLogger(__name__)

# ヘッダ無しでも 401 + 共通エラー形式で返すため auto_error=False
security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
):
    if credentials is None:
        raise AuthenticationError("Not authorized to access this route")

    try:
        payload = decode_access_token(credentials.credentials)
        user_id = payload.get("sub")
        if not user_id:
            raise JWTError("Missing subject claim")
        user_uuid = uuid.UUID(user_id)
    except (JWTError, ValueError) as e:
        logger.info("JWT verification failed: %s", e)
        raise AuthenticationError("Not authorized to access this route")

    user = db.query(User).filter(User.user_id == user_uuid).first()
    if user is None:
        raise NotFoundError("User not found")

    return user


def require_role(*roles: str):
    """
    指定ロールのみ通す依存関数を返す
    """
    def _checker(user: User = Depends(get_current_user)):
        if not user.role or user.role not in roles:
            raise AuthorizationError(f"User role {user.role} is not authorized to access this route")
        return user

    return _checker
