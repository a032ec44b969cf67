import json

import httpx
import pytest

from board_client.api_client import ApiError, CollabHubClient
from board_client.board import BoardPermissionError, KanbanBoard
from board_client.chat import ChatSession, TypingTracker
from board_client.notifications import NotificationFeed

BASE_URL = "http://testserver/api"


def envelope(data=None, message="OK", success=True, status_code=200, errors=None):
    body = {"success": success, "data": data, "message": message}
    if errors is not None:
        body["errors"] = errors
    return httpx.Response(status_code, json=body)


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeBoardServer:
    """Holds task state and answers the board endpoints of one project."""

    def __init__(self, tasks):
        self.tasks = {task["id"]: dict(task) for task in tasks}
        self.calls = []
        self.fail_patch = False
        self.fail_list = False

    def __call__(self, request):
        body = json.loads(request.content) if request.content else None
        self.calls.append((request.method, request.url.path, body))

        if request.method == "GET" and request.url.path == "/api/projects/1/tasks/":
            if self.fail_list:
                return envelope(success=False, message="Server error", status_code=500)
            tasks = sorted(self.tasks.values(), key=lambda t: t["id"])
            return envelope({"tasks": tasks, "count": len(tasks)})

        if request.method == "PATCH" and request.url.path.startswith("/api/tasks/"):
            if self.fail_patch:
                return envelope(success=False, message="Validation failed", status_code=400,
                                errors={"status": ["Invalid"]})
            task_id = int(request.url.path.rstrip("/").rsplit("/", 1)[1])
            self.tasks[task_id].update(body)
            return envelope(self.tasks[task_id])

        return envelope(success=False, message="Not found", status_code=404)


@pytest.fixture
def server():
    return FakeBoardServer([
        {"id": 1, "title": "Write docs", "status": "todo"},
        {"id": 2, "title": "Fix login", "status": "in_progress"},
        {"id": 3, "title": "Ship", "status": "done"},
    ])


@pytest.fixture
def board(server):
    client = CollabHubClient(base_url=BASE_URL, token="t", transport=httpx.MockTransport(server))
    board = KanbanBoard(client, project_id=1, current_user_id=10, owner_id=10)
    board.load()
    server.calls.clear()
    return board


def column_ids(board, column):
    return [task["id"] for task in board.columns[column]]


# -------------------------------------------------------------------
# ApiClient
# -------------------------------------------------------------------

def test_request_unwraps_envelope_data():
    transport = httpx.MockTransport(lambda request: envelope({"id": 5, "username": "alice"}))
    client = CollabHubClient(base_url=BASE_URL, transport=transport)
    assert client.me() == {"id": 5, "username": "alice"}


def test_error_envelope_raises_api_error():
    transport = httpx.MockTransport(
        lambda request: envelope(success=False, message="Not a project member",
                                 status_code=403)
    )
    client = CollabHubClient(base_url=BASE_URL, transport=transport)
    with pytest.raises(ApiError) as excinfo:
        client.get_project(1)
    assert excinfo.value.status_code == 403
    assert excinfo.value.message == "Not a project member"


def test_transport_failure_raises_api_error_with_status_zero():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = CollabHubClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    with pytest.raises(ApiError) as excinfo:
        client.running_timer()
    assert excinfo.value.status_code == 0


def test_login_stores_bearer_token():
    seen = []

    def handler(request):
        seen.append(request.headers.get("Authorization"))
        if request.url.path == "/api/auth/login/":
            return envelope({"access": "abc", "refresh": "def"})
        return envelope({"id": 1})

    client = CollabHubClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    client.login("alice", "secret")
    client.me()
    assert seen == [None, "Bearer abc"]


def test_unread_messages_reads_project_count():
    seen = []

    def handler(request):
        seen.append(request.url.path)
        return envelope({"unread_count": 4})

    client = CollabHubClient(base_url=BASE_URL, token="t", transport=httpx.MockTransport(handler))
    assert client.unread_messages(7) == 4
    assert seen == ["/api/projects/7/messages/unread/"]


# -------------------------------------------------------------------
# KanbanBoard
# -------------------------------------------------------------------


def test_load_groups_tasks_into_four_columns(board):
    assert list(board.columns) == ["todo", "in_progress", "review", "done"]
    assert column_ids(board, "todo") == [1]
    assert column_ids(board, "review") == []


def test_move_task_patches_status_and_refetches(board, server):
    command = board.move_task(1, "todo", "review")

    assert command.sent is True
    assert server.calls[0] == ("PATCH", "/api/tasks/1/", {"status": "review"})
    assert server.calls[1][:2] == ("GET", "/api/projects/1/tasks/")
    assert column_ids(board, "todo") == []
    assert column_ids(board, "review") == [1]
    assert board.error is None


def test_move_task_applies_optimistically_before_request(board, server):
    observed = []

    def handler(request):
        if request.method == "PATCH":
            observed.append((column_ids(board, "todo"), column_ids(board, "done")))
        return server(request)

    board.client = CollabHubClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    board.move_task(1, "todo", "done")
    assert observed == [([], [3, 1])]


def test_failed_move_still_refetches_server_state(board, server):
    server.fail_patch = True

    command = board.move_task(2, "in_progress", "done")

    assert command.sent is False
    assert [c[0] for c in server.calls] == ["PATCH", "GET"]
    assert column_ids(board, "in_progress") == [2]
    assert column_ids(board, "done") == [3]
    assert board.error.status_code == 400


def test_failed_refetch_keeps_local_state(board, server):
    server.fail_list = True

    board.move_task(1, "todo", "in_progress")

    assert column_ids(board, "in_progress") == [2, 1]
    assert board.error.status_code == 500


def test_non_owner_cannot_move(board, server):
    board.current_user_id = 11
    with pytest.raises(BoardPermissionError):
        board.move_task(1, "todo", "done")
    assert server.calls == []


def test_same_column_move_is_noop(board, server):
    assert board.move_task(1, "todo", "todo") is None
    assert server.calls == []


def test_unknown_column_rejected(board):
    with pytest.raises(ValueError):
        board.move_task(1, "todo", "archived")


def test_unknown_source_column_rejected(board, server):
    with pytest.raises(ValueError):
        board.move_task(1, "backlog", "done")
    assert server.calls == []
    assert column_ids(board, "done") == [3]


def test_stats(board):
    stats = board.stats()
    assert stats["total"] == 3
    assert stats["by_status"]["done"] == 1
    assert stats["completion_rate"] == 33


# -------------------------------------------------------------------
# NotificationFeed
# -------------------------------------------------------------------

class NotificationServer:
    def __init__(self):
        self.unread = 2
        self.fail = False
        self.calls = []

    def __call__(self, request):
        self.calls.append((request.method, request.url.path))
        if self.fail:
            return envelope(success=False, message="Unavailable", status_code=503)
        if request.url.path == "/api/notifications/unread-count/":
            return envelope({"unread_count": self.unread})
        if request.url.path == "/api/notifications/":
            return envelope({
                "notifications": [
                    {"id": 2, "title": "Task assigned", "is_read": False,
                     "created_at": "2026-01-02T10:00:00Z"},
                    {"id": 1, "title": "Application accepted", "is_read": False,
                     "created_at": "2026-01-01T10:00:00Z"},
                ],
                "total_pages": 1,
                "current_page": 1,
                "total_notifications": 2,
                "unread_count": self.unread,
            })
        return envelope({})


@pytest.fixture
def notification_server():
    return NotificationServer()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def feed(notification_server, clock):
    client = CollabHubClient(base_url=BASE_URL, transport=httpx.MockTransport(notification_server))
    return NotificationFeed(client, clock=clock)


def test_push_deduplicates_by_id(feed):
    event = {"type": "new_notification",
             "notification": {"id": 7, "title": "New message", "is_read": False,
                              "created_at": "2026-01-03T10:00:00Z"}}
    assert feed.handle_push(event) is True
    assert feed.handle_push(event) is False
    assert [n["id"] for n in feed.items] == [7]
    assert feed.unread_count == 1


def test_open_dropdown_merges_with_pushed(feed):
    feed.handle_push({"type": "new_notification",
                      "notification": {"id": 2, "title": "Task assigned", "is_read": False,
                                       "created_at": "2026-01-02T10:00:00Z"}})
    items = feed.open_dropdown()
    assert [n["id"] for n in items] == [2, 1]
    assert feed.unread_count == 2


def test_poll_respects_interval(feed, notification_server, clock):
    assert feed.poll() == 2
    notification_server.unread = 5

    clock.advance(29)
    assert feed.poll() is None
    clock.advance(1)
    assert feed.poll() == 5
    assert len(notification_server.calls) == 2


def test_poll_failure_keeps_count(feed, notification_server, clock):
    feed.poll()
    notification_server.fail = True
    clock.advance(30)
    assert feed.poll() is None
    assert feed.unread_count == 2


def test_mark_read_and_mark_all(feed):
    feed.open_dropdown()
    feed.mark_read(2)
    assert feed.unread_count == 1
    feed.mark_read(2)
    assert feed.unread_count == 1
    feed.mark_all_read()
    assert feed.unread_count == 0
    assert all(n["is_read"] for n in feed.items)


def test_feed_keeps_a_bounded_window(notification_server, clock):
    client = CollabHubClient(base_url=BASE_URL, transport=httpx.MockTransport(notification_server))
    feed = NotificationFeed(client, page_size=2, max_items=3, clock=clock)
    for n in range(1, 6):
        feed.handle_push({"type": "new_notification",
                          "notification": {"id": 100 + n, "is_read": False,
                                           "created_at": f"2026-02-0{n}T10:00:00Z"}})

    assert [n["id"] for n in feed.items] == [105, 104, 103]

    feed.open_dropdown()
    assert len(feed.items) == 3
    assert [n["id"] for n in feed.items] == [105, 104, 103]


# -------------------------------------------------------------------
# Chat
# -------------------------------------------------------------------

def test_typing_debounce(clock):
    tracker = TypingTracker(clock=clock)
    assert tracker.keystroke() is True
    clock.advance(0.5)
    assert tracker.keystroke() is False
    clock.advance(0.9)
    assert tracker.should_stop() is False
    clock.advance(0.1)
    assert tracker.should_stop() is True
    assert tracker.should_stop() is False


def test_remote_typists_expire(clock):
    tracker = TypingTracker(clock=clock)
    tracker.remote_started({"id": 4, "username": "bob"})
    clock.advance(2.9)
    assert [u["id"] for u in tracker.remote_typists()] == [4]
    clock.advance(0.1)
    assert tracker.remote_typists() == []


def test_chat_session_sends_over_rest_and_ignores_echo(clock):
    message = {"id": 9, "content": "hi", "created_at": "2026-01-01T10:00:00Z"}
    transport = httpx.MockTransport(lambda request: envelope(message, status_code=201))
    client = CollabHubClient(base_url=BASE_URL, transport=transport)
    events = []
    session = ChatSession(client, 1, events.append, clock=clock)

    session.join()
    session.on_keystroke()
    session.send("hi")
    session.handle_event({"type": "receive_message", "message": message})

    assert [e["type"] for e in events] == ["join_project", "typing", "stop_typing"]
    assert [m["id"] for m in session.messages] == [9]


def test_chat_session_handles_presence_and_typing(clock):
    session = ChatSession(client=None, project_id=1, send_event=lambda e: None, clock=clock)
    session.handle_event({"type": "online_users", "users": [{"id": 1}, {"id": 2}]})
    session.handle_event({"type": "user_typing", "user": {"id": 2}})
    assert [u["id"] for u in session.typing_users] == [2]
    session.handle_event({"type": "user_stop_typing", "user": {"id": 2}})
    assert session.typing_users == []
    assert len(session.online_users) == 2
