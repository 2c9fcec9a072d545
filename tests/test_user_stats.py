from datetime import datetime, timedelta

from models.reminder import Reminder
from models.user_stats import UserStats
from services import stats_service


def test_get_or_create_is_idempotent(db, user):
    first = stats_service.get_or_create(db, user.user_id)
    second = stats_service.get_or_create(db, user.user_id)

    assert first.stats_id == second.stats_id
    assert db.query(UserStats).filter(UserStats.user_id == user.user_id).count() == 1


def test_completion_counters(db, user):
    now = datetime(2024, 5, 1, 10, 0)
    stats_service.update_completion_stats(db, user.user_id, True, now=now)
    stats = stats_service.update_completion_stats(db, user.user_id, False, now=now + timedelta(hours=1))

    assert stats.completed_total == 2
    assert stats.completed_on_time == 1
    assert stats.completed_late == 1


def test_first_completion_starts_streak(db, user):
    stats = stats_service.update_completion_stats(db, user.user_id, True, now=datetime(2024, 5, 1))
    assert stats.streak_length == 1
    assert stats.longest_streak == 1
    assert stats.last_active == datetime(2024, 5, 1)


def test_streak_increments_at_exactly_24_hours(db, user):
    t0 = datetime(2024, 5, 1, 8, 0)
    stats_service.update_completion_stats(db, user.user_id, True, now=t0)
    stats = stats_service.update_completion_stats(db, user.user_id, True, now=t0 + timedelta(hours=24))

    assert stats.streak_length == 2
    assert stats.longest_streak == 2


def test_streak_resets_after_24_hours_and_a_millisecond(db, user):
    t0 = datetime(2024, 5, 1, 8, 0)
    stats_service.update_completion_stats(db, user.user_id, True, now=t0)
    stats_service.update_completion_stats(db, user.user_id, True, now=t0 + timedelta(hours=1))
    stats = stats_service.update_completion_stats(
        db, user.user_id, True, now=t0 + timedelta(hours=25, milliseconds=1)
    )

    assert stats.streak_length == 1
    assert stats.longest_streak == 2


def test_rolling_average_completion_time(db, user):
    stats_service.update_completion_stats(db, user.user_id, True, now=datetime(2024, 5, 1), duration_hours=2)
    stats = stats_service.update_completion_stats(
        db, user.user_id, True, now=datetime(2024, 5, 1, 1), duration_hours=4
    )
    assert stats.average_completion_time == 3


def test_tag_preferences_sorted_with_stable_ties(db, user):
    stats_service.update_tag_preferences(db, user.user_id, ["work", "home", "gym"])
    stats = stats_service.update_tag_preferences(db, user.user_id, ["gym"])

    assert stats.preferred_tags == [
        {"name": "gym", "count": 2},
        {"name": "work", "count": 1},
        {"name": "home", "count": 1},
    ]


def test_tag_preferences_empty_is_noop(db, user):
    before = stats_service.get_or_create(db, user.user_id).updated_at
    stats = stats_service.update_tag_preferences(db, user.user_id, [])

    assert stats.preferred_tags == []
    assert stats.updated_at == before


def test_scores_are_clamped():
    stats = UserStats()
    stats.consistency_score = 150
    stats.procrastination_index = -5
    stats.interaction_rate = 42

    assert stats.consistency_score == 100
    assert stats.procrastination_index == 0
    assert stats.interaction_rate == 42


def test_counters(db, user):
    stats_service.record_created(db, user.user_id)
    stats_service.record_snoozed(db, user.user_id)
    stats = stats_service.record_deleted(db, user.user_id)

    assert (stats.created_count, stats.snoozed_count, stats.deleted_count) == (1, 1, 1)


# -------------------------
# patterns
# -------------------------
def _seed_patterns(db, user):
    # 2024-05-06 と 2024-05-13 は月曜、2024-05-08 は水曜
    db.add_all([
        Reminder(user_id=user.user_id, title="a", due_date=datetime(2024, 5, 6, 9), priority="high",
                 completed=True, completed_at=datetime(2024, 5, 6, 8, 0), tags=["work"]),
        Reminder(user_id=user.user_id, title="b", due_date=datetime(2024, 5, 13, 10), priority="medium",
                 completed=True, completed_at=datetime(2024, 5, 13, 9, 30), tags=["work", "home"]),
        Reminder(user_id=user.user_id, title="c", due_date=datetime(2024, 5, 14, 10), priority="low", tags=["work"]),
        Reminder(user_id=user.user_id, title="d", due_date=datetime(2024, 5, 8, 21), priority="medium",
                 completed=True, completed_at=datetime(2024, 5, 8, 20, 0), tags=["home"]),
    ])
    db.commit()


def test_refresh_patterns(db, user):
    _seed_patterns(db, user)
    stats = stats_service.refresh_patterns(db, user.user_id)

    assert stats.most_productive_day == "Monday"
    assert stats.most_productive_time == "morning"
    assert stats.consistency_score == 66.7
    assert stats.category_performance == [
        {"tag": "work", "completion_rate": 66.7, "average_priority": "medium", "count": 3},
        {"tag": "home", "completion_rate": 100.0, "average_priority": "medium", "count": 2},
    ]


def test_refresh_patterns_without_completions(db, user):
    stats = stats_service.refresh_patterns(db, user.user_id)

    assert stats.most_productive_day is None
    assert stats.most_productive_time is None
    assert stats.consistency_score == 0
    assert stats.category_performance == []


def test_stats_endpoint_refreshes_patterns(client, db, user, auth_headers):
    _seed_patterns(db, user)
    res = client.get("/users/stats", headers=auth_headers)

    assert res.status_code == 200
    data = res.json()["data"]
    assert data["user_id"] == str(user.user_id)
    assert data["most_productive_day"] == "Monday"
    assert data["most_productive_time"] == "morning"
    assert data["category_performance"][0]["tag"] == "work"
