from sqlalchemy import Column, String, Boolean, DateTime, Float, Integer, JSON, Uuid
from db.database import Base
from services.dates import utcnow
import uuid

PERSONALITIES = ("helper", "motivator", "organizer", "cheerleader", "coach", "zen", "custom")
MESSAGE_EVENTS = ("greeting", "reminder", "encouragement", "completion", "overdue", "inactivity")


class Buddy(Base):
    __tablename__ = "buddies"

    buddy_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(50), nullable=False)
    personality = Column(String, nullable=False, default="helper")
    custom_traits = Column(JSON, default=list)
    avatar_url = Column(String, default="/assets/buddies/default.png")

    # {"greeting": [...], "reminder": [...], ...}
    default_messages = Column(JSON, default=dict)
    # {"user_style": "auto-detect", "adapt_to_time_of_day": True, ...}
    adaptive_behavior = Column(JSON, default=dict)

    is_default = Column(Boolean, default=False)
    is_public = Column(Boolean, default=False)
    creator_id = Column(Uuid, nullable=True)  # 作成ユーザー（システム既定なら None）

    user_count = Column(Integer, default=0)
    completion_rate = Column(Float, default=0)
    rating = Column(Float, default=0)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
