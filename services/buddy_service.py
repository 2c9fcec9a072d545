# services/buddy_service.py
import logging
import random
import uuid

from sqlalchemy.orm import Session

from models.buddy import Buddy, MESSAGE_EVENTS
from models.user import User
from schemas.buddy import BuddyCreate, BuddyUpdate
from services import stats_service
from services.errors import NotFoundError, AuthorizationError, ValidationError

logger = logging.getLogger(__name__)

# 既定パーソナリティごとのメッセージテンプレート（{title} はリマインダー名）
DEFAULT_MESSAGES = {
    "helper": {
        "greeting": [
            "Hi there! Ready to tackle your tasks?",
            "Hello! I'm here to help you stay organized.",
            "Welcome back! What would you like to accomplish today?",
        ],
        "reminder": [
            "Just a friendly reminder about {title}.",
            "Don't forget about {title}.",
            "Remember, you have {title} coming up.",
        ],
        "encouragement": [
            "You're doing well! Keep it up.",
            "You've got this!",
            "I believe in you - you can do it!",
        ],
        "completion": [
            "Great job completing {title}!",
            "Excellent! One more task completed.",
            "Well done on finishing {title}!",
        ],
        "overdue": [
            "It looks like {title} is overdue. Would you like to reschedule it?",
            "You missed {title}. No worries, let's find a new time for it.",
            "{title} has passed. Should we move it to today's list?",
        ],
        "inactivity": [
            "I haven't seen you in a while. Everything going okay?",
            "It's been a few days since you've checked in. Need help getting back on track?",
            "Welcome back! Ready to get organized again?",
        ],
    },
    "motivator": {
        "greeting": [
            "Let's crush those tasks today!",
            "Hey there, superstar! Ready to be amazing?",
            "Today is a perfect day for productivity!",
        ],
        "reminder": [
            "You've got {title} coming up - I know you'll ace it!",
            "Time to shine! {title} is on your schedule.",
            "{title} is on the horizon - you're going to do great!",
        ],
        "encouragement": [
            "You're unstoppable! Keep pushing forward!",
            "Remember why you started - you're making amazing progress!",
            "Each task completed is a victory. You're winning!",
        ],
        "completion": [
            "BOOM! {title} completed! You're on fire!",
            "You just conquered {title}! What's next on your path to greatness?",
            "That's what I'm talking about! {title} - DONE!",
        ],
        "overdue": [
            "Hey champion, {title} slipped by. Let's regroup and conquer it!",
            "No sweat about missing {title}. Champions adjust and keep moving!",
            "{title} is overdue, but that's just a temporary setback. Let's reschedule and win!",
        ],
        "inactivity": [
            "Hey rockstar! Missing your energy around here!",
            "Time to get back in the game! I know you've got what it takes!",
            "The comeback is always stronger than the setback. Ready to return to greatness?",
        ],
    },
    "organizer": {
        "greeting": ["Good to see you. Let's review today's list.", "Your schedule is ready."],
        "reminder": ["Next on the list: {title}.", "{title} is scheduled. Time to get it done."],
        "encouragement": ["One item at a time. The plan is working.", "Steady progress keeps the list short."],
        "completion": ["{title} checked off.", "{title} is done. Moving to the next item."],
        "overdue": ["{title} is past due. Pick a new slot for it.", "{title} needs rescheduling."],
        "inactivity": ["Your list has been waiting. Let's sort it out.", "A quick review will get things back in order."],
    },
    "cheerleader": {
        "greeting": ["Yay, you're here! Let's have a great day!", "Hello, sunshine! Ready to shine?"],
        "reminder": ["Go go go! {title} is coming up!", "You can totally do {title}!"],
        "encouragement": ["I'm so proud of you!", "Look at you go!"],
        "completion": ["Woohoo! {title} is done!", "Amazing work on {title}!"],
        "overdue": ["{title} got away, but you've got this!", "Let's give {title} another shot!"],
        "inactivity": ["I missed you! Come back and show me what you've got!", "Your cheer squad is waiting!"],
    },
    "coach": {
        "greeting": ["Let's get to work.", "New day, new reps. Ready?"],
        "reminder": ["{title} is up. No excuses.", "Focus. {title} is next."],
        "encouragement": ["Push through. Discipline beats motivation.", "You're stronger than you think."],
        "completion": ["{title} done. Good work, keep the pace.", "That's how it's done. {title} complete."],
        "overdue": ["{title} is overdue. Own it and reschedule.", "You missed {title}. Reset and go again."],
        "inactivity": ["You've been off the field. Time to get back in.", "Momentum is lost fast. Let's rebuild it."],
    },
    "zen": {
        "greeting": ["Welcome. Breathe in, and begin.", "A calm mind makes light work."],
        "reminder": ["When you are ready, {title} awaits.", "Gently now, {title} is near."],
        "encouragement": ["Each small step is enough.", "Progress flows like water."],
        "completion": ["{title} is complete. Take a moment to notice it.", "Well done. {title} is finished."],
        "overdue": ["{title} has passed. Let it go, and choose a new time.", "No worry. {title} can find a new moment."],
        "inactivity": ["It has been quiet. Return whenever you are ready.", "Welcome back to the present."],
    },
}


def fill_default_messages(buddy: Buddy) -> None:
    """
    既定パーソナリティなら、空のイベントにテンプレートを補う（custom は対象外）
    """
    templates = DEFAULT_MESSAGES.get(buddy.personality)
    if not templates:
        return
    messages = dict(buddy.default_messages or {})
    for event in MESSAGE_EVENTS:
        if not messages.get(event):
            messages[event] = list(templates.get(event, []))
    buddy.default_messages = messages


def render_message(buddy: Buddy | None, event: str, title: str = "") -> str | None:
    if buddy is None:
        return None
    templates = (buddy.default_messages or {}).get(event) or []
    if not templates:
        return None
    return random.choice(templates).replace("{title}", title)


def get_default_buddy(db: Session) -> Buddy | None:
    return db.query(Buddy).filter(Buddy.is_default.is_(True)).first()


def get_user_buddy(db: Session, user: User) -> Buddy | None:
    if user.default_buddy_id:
        buddy = db.query(Buddy).filter(Buddy.buddy_id == user.default_buddy_id).first()
        if buddy is not None:
            return buddy
    return get_default_buddy(db)


def message_for_user(db: Session, user: User, event: str, title: str = "") -> str | None:
    return render_message(get_user_buddy(db, user), event, title)


def list_default_buddies(db: Session) -> list[Buddy]:
    return (
        db.query(Buddy)
        .filter((Buddy.is_default.is_(True)) | (Buddy.is_public.is_(True)))
        .order_by(Buddy.is_default.desc(), Buddy.name.asc())
        .all()
    )


def _set_default(db: Session, buddy: Buddy) -> None:
    # 既定バディは1体だけ
    db.query(Buddy).filter(Buddy.buddy_id != buddy.buddy_id, Buddy.is_default.is_(True)).update(
        {Buddy.is_default: False}, synchronize_session=False
    )
    buddy.is_default = True


def _can_see(buddy: Buddy, user: User) -> bool:
    return bool(buddy.is_default or buddy.is_public or buddy.creator_id == user.user_id or user.role == "admin")


def get_buddy(db: Session, buddy_id: uuid.UUID, user: User) -> Buddy:
    buddy = db.query(Buddy).filter(Buddy.buddy_id == buddy_id).first()
    if buddy is None:
        raise NotFoundError(f"Buddy not found with id of {buddy_id}")
    if not _can_see(buddy, user):
        raise AuthorizationError("User not authorized to access this buddy")
    return buddy


def create_buddy(db: Session, user: User | None, data: BuddyCreate) -> Buddy:
    if data.is_default and (user is None or user.role != "admin"):
        raise AuthorizationError("Only admins can set the default buddy")

    buddy = Buddy(
        name=data.name.strip(),
        personality=data.personality,
        custom_traits=list(data.custom_traits),
        default_messages=data.default_messages.model_dump(),
        adaptive_behavior=data.adaptive_behavior.model_dump(),
        is_default=False,
        is_public=data.is_public,
        creator_id=user.user_id if user else None,
    )
    if data.avatar_url:
        buddy.avatar_url = data.avatar_url
    fill_default_messages(buddy)

    db.add(buddy)
    db.flush()
    if data.is_default:
        _set_default(db, buddy)
    db.commit()
    db.refresh(buddy)
    logger.info("buddy created: %s (%s)", buddy.name, buddy.personality)
    return buddy


def update_buddy(db: Session, buddy_id: uuid.UUID, user: User, data: BuddyUpdate) -> Buddy:
    buddy = db.query(Buddy).filter(Buddy.buddy_id == buddy_id).first()
    if buddy is None:
        raise NotFoundError(f"Buddy not found with id of {buddy_id}")
    if buddy.creator_id != user.user_id and user.role != "admin":
        raise AuthorizationError("User not authorized to update this buddy")
    if data.is_default is not None and user.role != "admin":
        raise AuthorizationError("Only admins can set the default buddy")

    personality = data.personality or buddy.personality
    traits = data.custom_traits if data.custom_traits is not None else (buddy.custom_traits or [])
    if personality == "custom" and not traits:
        raise ValidationError("Custom traits are required for custom personality")

    if data.name is not None:
        buddy.name = data.name.strip()
    if data.avatar_url is not None:
        buddy.avatar_url = data.avatar_url
    if data.custom_traits is not None:
        buddy.custom_traits = list(data.custom_traits)
    if data.adaptive_behavior is not None:
        buddy.adaptive_behavior = data.adaptive_behavior.model_dump()
    if data.is_public is not None:
        buddy.is_public = data.is_public

    if data.default_messages is not None:
        buddy.default_messages = data.default_messages.model_dump()
    if data.personality is not None and data.personality != buddy.personality:
        buddy.personality = data.personality
        # パーソナリティが変わったら、明示されていないイベントは新しいテンプレートに
        if data.default_messages is None:
            buddy.default_messages = {}
    fill_default_messages(buddy)

    if data.is_default is True:
        _set_default(db, buddy)
    elif data.is_default is False:
        buddy.is_default = False

    db.commit()
    db.refresh(buddy)
    return buddy


def make_default(db: Session, buddy_id: uuid.UUID) -> Buddy:
    buddy = db.query(Buddy).filter(Buddy.buddy_id == buddy_id).first()
    if buddy is None:
        raise NotFoundError(f"Buddy not found with id of {buddy_id}")
    _set_default(db, buddy)
    db.commit()
    db.refresh(buddy)
    logger.info("default buddy changed: %s", buddy.name)
    return buddy


def assign_to_user(db: Session, user: User, buddy_id: uuid.UUID) -> Buddy:
    """
    ユーザーの担当バディを変更する（利用者数と統計も更新）
    """
    buddy = get_buddy(db, buddy_id, user)

    if user.default_buddy_id != buddy.buddy_id:
        if user.default_buddy_id:
            previous = db.query(Buddy).filter(Buddy.buddy_id == user.default_buddy_id).first()
            if previous is not None and previous.user_count:
                previous.user_count -= 1
        buddy.user_count = (buddy.user_count or 0) + 1
        user.default_buddy_id = buddy.buddy_id

    db.commit()

    stats = stats_service.get_or_create(db, user.user_id)
    stats.preferred_buddy_id = buddy.buddy_id
    db.commit()
    db.refresh(buddy)
    return buddy
