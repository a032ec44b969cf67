"""
Project chat session over an already-open socket.

Messages are persisted through the REST API (the server broadcasts them to
the room); everything else travels as socket events via ``send_event``.
"""
import logging
import time

logger = logging.getLogger(__name__)

TYPING_STOP_DELAY = 1.0
REMOTE_TYPING_TIMEOUT = 3.0


class TypingTracker:
    """Local keystroke debounce plus expiry of remote typists."""

    def __init__(self, clock=time.monotonic,
                 stop_delay=TYPING_STOP_DELAY, remote_timeout=REMOTE_TYPING_TIMEOUT):
        self.clock = clock
        self.stop_delay = stop_delay
        self.remote_timeout = remote_timeout
        self.typing = False
        self._last_keystroke = None
        self._remote = {}

    def keystroke(self):
        """Returns True when a ``typing`` event should go out."""
        self._last_keystroke = self.clock()
        if self.typing:
            return False
        self.typing = True
        return True

    def should_stop(self):
        """Returns True once, when ``stop_typing`` is due."""
        if not self.typing or self.clock() - self._last_keystroke < self.stop_delay:
            return False
        self.typing = False
        return True

    def reset(self):
        was_typing = self.typing
        self.typing = False
        return was_typing

    def remote_started(self, user):
        self._remote[user["id"]] = (user, self.clock())

    def remote_stopped(self, user):
        self._remote.pop(user["id"], None)

    def remote_typists(self):
        now = self.clock()
        self._remote = {
            user_id: (user, seen)
            for user_id, (user, seen) in self._remote.items()
            if now - seen < self.remote_timeout
        }
        return [user for user, _ in self._remote.values()]


class ChatSession:
    def __init__(self, client, project_id, send_event, clock=time.monotonic):
        self.client = client
        self.project_id = project_id
        self.send_event = send_event
        self.messages = []
        self.online_users = []
        self.errors = []
        self.typing = TypingTracker(clock=clock)

    def _emit(self, type, **payload):
        self.send_event({"type": type, "project_id": self.project_id, **payload})

    def join(self):
        self._emit("join_project")

    def leave(self):
        if self.typing.reset():
            self._emit("stop_typing")
        self._emit("leave_project")

    def _add(self, message):
        for index, existing in enumerate(self.messages):
            if existing["id"] == message["id"]:
                self.messages[index] = message
                return False
        self.messages.append(message)
        self.messages.sort(key=lambda m: (m.get("created_at") or "", m["id"]))
        return True

    def send(self, content, reply_to=None):
        message = self.client.send_message(self.project_id, content, reply_to=reply_to)
        if self.typing.reset():
            self._emit("stop_typing")
        self._add(message)
        return message

    def load_history(self, limit=50):
        before = self.messages[0]["id"] if self.messages else None
        data = self.client.list_messages(self.project_id, before=before, limit=limit)
        for message in data["messages"]:
            self._add(message)
        return data["has_more"]

    def on_keystroke(self):
        if self.typing.keystroke():
            self._emit("typing")

    def tick(self):
        if self.typing.should_stop():
            self._emit("stop_typing")

    @property
    def typing_users(self):
        return self.typing.remote_typists()

    def handle_event(self, event):
        kind = event.get("type")
        if kind == "recent_messages":
            self.messages = []
            for message in event["messages"]:
                self._add(message)
        elif kind in ("receive_message", "message_updated"):
            self._add(event["message"])
        elif kind == "message_deleted":
            self.messages = [m for m in self.messages if m["id"] != event["message"]["id"]]
        elif kind == "online_users":
            self.online_users = event["users"]
        elif kind == "user_typing":
            self.typing.remote_started(event["user"])
        elif kind == "user_stop_typing":
            self.typing.remote_stopped(event["user"])
        elif kind == "error":
            logger.warning(f"Chat error in project {self.project_id}: {event.get('message')}")
            self.errors.append(event.get("message"))
        else:
            logger.debug(f"Ignoring chat event {kind}")
