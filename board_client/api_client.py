"""
Thin httpx client for the CollabHub REST API.

Every endpoint answers with ``{"success", "data", "message"}``; the client
returns ``data`` on success and raises :class:`ApiError` otherwise.
"""
import logging
import os

import httpx

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = os.getenv("COLLABHUB_API_URL", "http://localhost:8000/api")
DEFAULT_TIMEOUT = float(os.getenv("COLLABHUB_API_TIMEOUT", "10"))


class ApiError(Exception):
    def __init__(self, status_code, message, errors=None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.errors = errors

    def __str__(self):
        return f"{self.status_code}: {self.message}"


class CollabHubClient:
    def __init__(self, base_url=None, token=None, timeout=DEFAULT_TIMEOUT, transport=None):
        self._http = httpx.Client(
            base_url=base_url or DEFAULT_BASE_URL,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )
        self.token = token

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self):
        self._http.close()

    @property
    def token(self):
        return self._token

    @token.setter
    def token(self, value):
        self._token = value
        if value:
            self._http.headers["Authorization"] = f"Bearer {value}"
        else:
            self._http.headers.pop("Authorization", None)

    def request(self, method, path, **kwargs):
        try:
            response = self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise ApiError(0, str(e)) from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.is_error or (isinstance(body, dict) and body.get("success") is False):
            message = body.get("message") if isinstance(body, dict) else None
            errors = body.get("errors") if isinstance(body, dict) else None
            logger.warning(f"{method} {path} -> {response.status_code}: {message}")
            raise ApiError(response.status_code, message or response.reason_phrase, errors)

        if isinstance(body, dict) and "success" in body:
            return body.get("data")
        return body

    # Auth
    def login(self, username, password):
        data = self.request("POST", "/auth/login/", json={"username": username, "password": password})
        self.token = data["access"]
        return data

    def me(self):
        return self.request("GET", "/users/me/")

    # Projects
    def get_project(self, project_id):
        return self.request("GET", f"/projects/{project_id}/")

    def project_progress(self, project_id):
        return self.request("GET", f"/projects/{project_id}/progress/")

    # Tasks
    def list_tasks(self, project_id, **filters):
        params = {k: v for k, v in filters.items() if v is not None}
        return self.request("GET", f"/projects/{project_id}/tasks/", params=params)

    def create_task(self, project_id, **fields):
        return self.request("POST", f"/projects/{project_id}/tasks/", json=fields)

    def update_task(self, task_id, **fields):
        return self.request("PATCH", f"/tasks/{task_id}/", json=fields)

    def update_task_status(self, task_id, status):
        return self.update_task(task_id, status=status)

    def delete_task(self, task_id):
        return self.request("DELETE", f"/tasks/{task_id}/")

    # Notifications
    def list_notifications(self, page=1, limit=20, unread_only=False):
        params = {"page": page, "limit": limit}
        if unread_only:
            params["unread_only"] = "true"
        return self.request("GET", "/notifications/", params=params)

    def unread_count(self):
        return self.request("GET", "/notifications/unread-count/")["unread_count"]

    def mark_notification_read(self, notification_id):
        return self.request("PUT", f"/notifications/{notification_id}/read/")

    def mark_all_notifications_read(self):
        return self.request("PUT", "/notifications/read-all/")

    # Chat
    def list_messages(self, project_id, before=None, limit=50):
        params = {"limit": limit}
        if before is not None:
            params["before"] = before
        return self.request("GET", f"/projects/{project_id}/messages/", params=params)

    def send_message(self, project_id, content, reply_to=None):
        payload = {"content": content}
        if reply_to is not None:
            payload["reply_to"] = reply_to
        return self.request("POST", f"/projects/{project_id}/messages/", json=payload)

    def unread_messages(self, project_id):
        return self.request("GET", f"/projects/{project_id}/messages/unread/")["unread_count"]

    # Time tracking
    def start_timer(self, project=None, task=None, description=""):
        payload = {"description": description}
        if project is not None:
            payload["project"] = project
        if task is not None:
            payload["task"] = task
        return self.request("POST", "/time/start/", json=payload)

    def stop_timer(self, entry_id=None):
        payload = {"entry_id": entry_id} if entry_id is not None else {}
        return self.request("POST", "/time/stop/", json=payload)

    def running_timer(self):
        return self.request("GET", "/time/running/")

    def time_summary(self, start=None, end=None):
        params = {k: v for k, v in {"start": start, "end": end}.items() if v is not None}
        return self.request("GET", "/time/summary/", params=params)
