# client/api.py
"""
BuddyRemind API の薄いクライアント

    client = BuddyRemindClient(httpx.Client(base_url="http://localhost:8000"))
    client.login("me@example.com", "secret")
    client.get_reminders(today=True)

トークンは AuthState に保持し、401/403 が返ったら破棄する。
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)


@dataclass
class AuthState:
    token: Optional[str] = None
    current_user: Optional[dict] = None
    error: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None and self.current_user is not None

    def clear(self) -> None:
        self.token = None
        self.current_user = None


class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


@dataclass
class BuddyRemindClient:
    http: httpx.Client
    state: AuthState = field(default_factory=AuthState)

    # -------------------------
    # transport
    # -------------------------
    def _request(self, method: str, path: str, **kwargs) -> dict:
        headers = kwargs.pop("headers", {})
        if self.state.token:
            headers["Authorization"] = f"Bearer {self.state.token}"

        res = self.http.request(method, path, headers=headers, **kwargs)
        try:
            body = res.json()
        except ValueError:
            body = {"success": False, "message": res.text}

        if res.status_code in (401, 403):
            # セッション切れ・権限なしはトークンを捨てる
            self.state.clear()
        if res.status_code >= 400:
            message = body.get("message") or f"Request failed ({res.status_code})"
            self.state.error = message
            logger.debug("%s %s -> %s %s", method, path, res.status_code, message)
            raise ApiError(res.status_code, message)

        self.state.error = None
        return body

    def _store_session(self, body: dict) -> dict:
        self.state.token = body.get("token")
        self.state.current_user = body.get("data")
        return body

    # -------------------------
    # auth
    # -------------------------
    def register(self, name: str, email: str, password: str) -> dict:
        body = self._request("POST", "/auth/register", json={"name": name, "email": email, "password": password})
        return self._store_session(body)

    def login(self, email: str, password: str) -> dict:
        body = self._request("POST", "/auth/login", json={"email": email, "password": password})
        return self._store_session(body)

    def logout(self) -> None:
        try:
            self._request("GET", "/auth/logout")
        finally:
            # API が失敗してもローカルの状態は消す
            self.state.clear()

    def load_user(self) -> Optional[dict]:
        if not self.state.token:
            return None
        try:
            body = self._request("GET", "/auth/me")
        except ApiError:
            self.state.clear()
            self.state.error = "Session expired. Please login again."
            return None
        self.state.current_user = body["data"]
        return self.state.current_user

    def update_profile(self, **fields: Any) -> dict:
        body = self._request("PUT", "/auth/update-details", json=fields)
        self.state.current_user = body["data"]
        return body

    def update_password(self, current_password: str, new_password: str) -> dict:
        body = self._request(
            "PUT",
            "/auth/update-password",
            json={"current_password": current_password, "new_password": new_password},
        )
        return self._store_session(body)

    def forgot_password(self, email: str) -> dict:
        return self._request("POST", "/auth/forgot-password", json={"email": email})

    def reset_password(self, token: str, password: str) -> dict:
        body = self._request("PUT", f"/auth/reset-password/{token}", json={"password": password})
        return self._store_session(body)

    def verify_email(self, token: str) -> dict:
        return self._request("GET", f"/auth/verify-email/{token}")

    # -------------------------
    # reminders
    # -------------------------
    def get_reminders(self, **filters: Any) -> dict:
        params = {}
        for key, value in filters.items():
            if value is None:
                continue
            if key == "date_from":
                key = "from"
            elif key == "date_to":
                key = "to"
            params[key] = str(value).lower() if isinstance(value, bool) else value
        return self._request("GET", "/reminders/", params=params)

    def get_reminder(self, reminder_id: str) -> dict:
        return self._request("GET", f"/reminders/{reminder_id}")

    def create_reminder(self, data: dict) -> dict:
        return self._request("POST", "/reminders/", json=data)

    def update_reminder(self, reminder_id: str, data: dict) -> dict:
        return self._request("PUT", f"/reminders/{reminder_id}", json=data)

    def delete_reminder(self, reminder_id: str) -> dict:
        return self._request("DELETE", f"/reminders/{reminder_id}")

    def toggle_complete(self, reminder_id: str, note: str = "") -> dict:
        return self._request("PUT", f"/reminders/{reminder_id}/complete", json={"note": note})

    def snooze_reminder(self, reminder_id: str, snooze_duration: str, note: str = "") -> dict:
        return self._request(
            "PUT",
            f"/reminders/{reminder_id}/snooze",
            json={"snooze_duration": snooze_duration, "note": note},
        )

    def get_reminder_analytics(self, period: str = "30days") -> dict:
        return self._request("GET", "/reminders/analytics", params={"period": period})

    # -------------------------
    # buddies / stats
    # -------------------------
    def get_default_buddies(self) -> dict:
        return self._request("GET", "/buddies/default")

    def get_user_buddy(self) -> dict:
        return self._request("GET", "/users/buddy")

    def update_user_buddy(self, buddy_id: str) -> dict:
        return self._request("PUT", "/users/buddy", json={"buddy_id": buddy_id})

    def get_buddy(self, buddy_id: str) -> dict:
        return self._request("GET", f"/buddies/{buddy_id}")

    def create_buddy(self, data: dict) -> dict:
        return self._request("POST", "/buddies/", json=data)

    def customize_buddy(self, buddy_id: str, data: dict) -> dict:
        return self._request("PUT", f"/buddies/{buddy_id}", json=data)

    def make_default_buddy(self, buddy_id: str) -> dict:
        return self._request("PUT", f"/buddies/{buddy_id}/default")

    def get_user_stats(self) -> dict:
        return self._request("GET", "/users/stats")

    def get_dashboard_stats(self) -> dict:
        return self._request("GET", "/users/dashboard-stats")
