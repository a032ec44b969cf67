"""
WebSocket consumer for per-user notification delivery.

Each authenticated connection joins ``user_{id}``; server code pushes
``notification.new`` events into that group (see ``services.push_notification``)
and they are forwarded to the browser as ``new_notification``.
"""

import json
import logging

from channels.generic.websocket import AsyncWebsocketConsumer

from ..services import user_room

logger = logging.getLogger(__name__)


class NotificationConsumer(AsyncWebsocketConsumer):

    async def connect(self):
        user = self.scope.get("user")
        if not user or not user.is_authenticated:
            logger.warning("Notification socket rejected: user not authenticated")
            await self.close(code=4001)
            return

        self.room_group_name = user_room(user.id)
        await self.channel_layer.group_add(self.room_group_name, self.channel_name)
        await self.accept()
        logger.info(f"User {user.username} joined notification room {self.room_group_name}")

    async def disconnect(self, close_code):
        if hasattr(self, "room_group_name"):
            await self.channel_layer.group_discard(self.room_group_name, self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        try:
            data = json.loads(text_data or "{}")
        except json.JSONDecodeError:
            await self.send(text_data=json.dumps({
                "type": "error",
                "message": "Invalid JSON format"
            }))
            return

        if not isinstance(data, dict):
            await self.send(text_data=json.dumps({
                "type": "error",
                "message": "Expected a JSON object"
            }))
            return

        if data.get("type") == "ping":
            await self.send(text_data=json.dumps({"type": "pong"}))

    async def notification_new(self, event):
        await self.send(text_data=json.dumps({
            "type": "new_notification",
            "notification": event["notification"],
        }))
