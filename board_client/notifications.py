"""
Notification feed: socket pushes, a polling backstop for the unread badge,
and the dropdown list. Pushes and fetches are merged by notification id so
a notification that arrives both ways is shown once.
"""
import logging
import time

from board_client.api_client import ApiError

logger = logging.getLogger(__name__)

POLL_INTERVAL = 30
MAX_ITEMS = 50


class NotificationFeed:
    def __init__(self, client, page_size=10, poll_interval=POLL_INTERVAL,
                 max_items=MAX_ITEMS, clock=time.monotonic):
        self.client = client
        self.page_size = page_size
        self.max_items = max(max_items, page_size)
        self.poll_interval = poll_interval
        self.clock = clock
        self.items = []
        self.unread_count = 0
        self._last_poll = None

    def _index(self, notification_id):
        for index, item in enumerate(self.items):
            if item["id"] == notification_id:
                return index
        return None

    def _sort(self):
        self.items.sort(key=lambda n: (n.get("created_at") or "", n["id"]), reverse=True)
        del self.items[self.max_items:]

    def handle_push(self, event):
        """Apply a ``new_notification`` socket event; returns False for duplicates."""
        if event.get("type") != "new_notification":
            return False
        notification = event["notification"]
        if self._index(notification["id"]) is not None:
            return False

        self.items.append(notification)
        self._sort()
        if not notification.get("is_read"):
            self.unread_count += 1
        return True

    def merge(self, notifications):
        for notification in notifications:
            index = self._index(notification["id"])
            if index is None:
                self.items.append(notification)
            else:
                self.items[index] = notification
        self._sort()

    def open_dropdown(self):
        data = self.client.list_notifications(page=1, limit=self.page_size)
        self.merge(data["notifications"])
        self.unread_count = data["unread_count"]
        return self.items[:self.page_size]

    def poll_due(self):
        return self._last_poll is None or self.clock() - self._last_poll >= self.poll_interval

    def poll(self, force=False):
        """Refresh the unread badge if the interval elapsed. Errors keep the last count."""
        if not force and not self.poll_due():
            return None
        self._last_poll = self.clock()
        try:
            self.unread_count = self.client.unread_count()
        except ApiError as e:
            logger.warning(f"Unread count poll failed: {e}")
            return None
        return self.unread_count

    def mark_read(self, notification_id):
        self.client.mark_notification_read(notification_id)
        index = self._index(notification_id)
        if index is not None and not self.items[index].get("is_read"):
            self.items[index] = {**self.items[index], "is_read": True}
            self.unread_count = max(self.unread_count - 1, 0)

    def mark_all_read(self):
        self.client.mark_all_notifications_read()
        self.items = [{**item, "is_read": True} for item in self.items]
        self.unread_count = 0
