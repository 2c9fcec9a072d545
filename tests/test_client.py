import pytest

from client.api import BuddyRemindClient, ApiError


@pytest.fixture
def api(client):
    return BuddyRemindClient(client)


def test_session_lifecycle(api):
    api.register("Dana", "dana@example.com", "secret123")
    assert api.state.is_authenticated
    assert api.state.current_user["email"] == "dana@example.com"

    created = api.create_reminder({"title": "Call mom", "due_date": "2099-05-01T18:00:00", "tags": ["family"]})
    rid = created["data"]["reminder_id"]

    listed = api.get_reminders(tag="family", completed=False)
    assert listed["count"] == 1

    done = api.toggle_complete(rid, note="called")
    assert done["data"]["completed"] is True

    snoozed = api.snooze_reminder(rid, "tomorrow")
    assert snoozed["data"]["due_date"].endswith("09:00:00")

    stats = api.get_user_stats()["data"]
    assert stats["completed_total"] == 1
    assert stats["preferred_tags"] == [{"name": "family", "count": 1}]

    api.logout()
    assert api.state.token is None
    assert not api.state.is_authenticated


def test_unauthorized_response_clears_token(api):
    api.state.token = "expired"
    with pytest.raises(ApiError) as exc:
        api.get_reminders()

    assert exc.value.status_code == 401
    assert api.state.token is None
    assert api.state.error == "Not authorized to access this route"


def test_load_user_with_bad_token(api):
    api.state.token = "garbage"
    assert api.load_user() is None
    assert api.state.error == "Session expired. Please login again."


def test_login_and_dashboard(api):
    api.register("Eve", "eve@example.com", "secret123")
    api.logout()

    api.login("eve@example.com", "secret123")
    dashboard = api.get_dashboard_stats()["data"]
    assert dashboard["week"]["period"] == "7days"
    assert dashboard["streak_length"] == 0


def test_buddy_calls(api):
    api.register("Finn", "finn@example.com", "secret123")

    created = api.create_buddy({"name": "Pal", "personality": "zen"})["data"]
    fetched = api.get_buddy(created["buddy_id"])["data"]
    assert fetched["name"] == "Pal"

    api.update_user_buddy(created["buddy_id"])
    assert api.get_user_buddy()["data"]["buddy_id"] == created["buddy_id"]

    with pytest.raises(ApiError) as exc:
        api.make_default_buddy(created["buddy_id"])
    assert exc.value.status_code == 403
