from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, JSON, Uuid
from db.database import Base
from services.dates import utcnow
import uuid


class User(Base):
    __tablename__ = "users"

    user_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(50), nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, default="user")  # user / admin

    is_verified = Column(Boolean, default=False)
    # トークンは sha256 ハッシュで保存（平文は保存しない）
    verification_token = Column(String, nullable=True)
    reset_password_token = Column(String, nullable=True)
    reset_password_expire = Column(DateTime, nullable=True)

    default_buddy_id = Column(Uuid, ForeignKey("buddies.buddy_id"), nullable=True)
    preferences = Column(JSON, default=dict)

    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
