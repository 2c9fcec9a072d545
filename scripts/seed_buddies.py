"""
既定バディ投入スクリプト

処理フロー:
1. 既存のシステムバディ（creator なし）を削除
2. 既定パーソナリティごとにバディを作成（Helper を既定バディにする）

使い方:
    python -m scripts.seed_buddies
"""

from sqlalchemy.orm import Session

from models.buddy import Buddy
from models.user import User
from services.buddy_service import fill_default_messages

SEED_BUDDIES = [
    {"name": "Helper", "personality": "helper", "is_default": True, "adapt_to_mood": False},
    {"name": "Motivator", "personality": "motivator", "is_default": False, "adapt_to_mood": True},
    {"name": "Organizer", "personality": "organizer", "is_default": False, "adapt_to_mood": False},
    {"name": "Cheerleader", "personality": "cheerleader", "is_default": False, "adapt_to_mood": True},
    {"name": "Coach", "personality": "coach", "is_default": False, "adapt_to_mood": False},
    {"name": "Zen", "personality": "zen", "is_default": False, "adapt_to_mood": True},
]


def seed_buddies(db: Session) -> list[Buddy]:
    # 既存ユーザーの割り当てを外してからシステムバディを入れ替える
    system_ids = [b.buddy_id for b in db.query(Buddy).filter(Buddy.creator_id.is_(None)).all()]
    if system_ids:
        db.query(User).filter(User.default_buddy_id.in_(system_ids)).update(
            {User.default_buddy_id: None}, synchronize_session=False
        )
        db.query(Buddy).filter(Buddy.buddy_id.in_(system_ids)).delete(synchronize_session=False)
    print(f"既存バディを削除: {len(system_ids)}件")

    created = []
    for item in SEED_BUDDIES:
        buddy = Buddy(
            name=item["name"],
            personality=item["personality"],
            custom_traits=[],
            avatar_url=f"/assets/buddies/{item['personality']}.png",
            default_messages={},
            adaptive_behavior={
                "user_style": "auto-detect",
                "adapt_to_time_of_day": True,
                "adapt_to_completion": True,
                "adapt_to_mood": item["adapt_to_mood"],
            },
            is_default=item["is_default"],
            is_public=True,
        )
        fill_default_messages(buddy)
        db.add(buddy)
        created.append(buddy)

    db.commit()
    print(f"バディを作成: {len(created)}件")
    return created


if __name__ == "__main__":
    from db.database import SessionLocal, engine, Base

    Base.metadata.create_all(bind=engine)

    print("=" * 60)
    print("バディ投入スクリプト開始")
    print("=" * 60)

    session = SessionLocal()
    try:
        seed_buddies(session)
    finally:
        session.close()

    print("✓ 投入完了")
