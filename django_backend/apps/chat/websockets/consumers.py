"""
WebSocket consumer for project chat rooms.

One connection may join several project rooms (``project_{id}``) through
``join_project`` events. Messages sent over the socket are persisted before
they are broadcast; typing indicators are relayed without persistence.
"""

import json
import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer

from apps.projects.models import Project
from ..models import Message, MessageType
from .. import services

logger = logging.getLogger(__name__)


class ProjectChatConsumer(AsyncWebsocketConsumer):

    async def connect(self):
        user = self.scope.get("user")
        if not user or not user.is_authenticated:
            logger.warning("Chat socket rejected: user not authenticated")
            await self.close(code=4001)
            return

        self.user = user
        self.joined = set()
        await self.accept()
        logger.info(f"Chat socket connected for {user.username}")

    async def disconnect(self, close_code):
        for project_id in list(getattr(self, "joined", ())):
            await self.leave(project_id)

    async def receive(self, text_data=None, bytes_data=None):
        try:
            data = json.loads(text_data or "")
        except json.JSONDecodeError:
            await self.send_error("Invalid JSON format")
            return
        if not isinstance(data, dict):
            await self.send_error("Expected a JSON object")
            return

        handlers = {
            "join_project": self.handle_join,
            "leave_project": self.handle_leave,
            "send_message": self.handle_send_message,
            "typing": self.handle_typing,
            "stop_typing": self.handle_stop_typing,
        }
        handler = handlers.get(data.get("type"))
        if handler is None:
            await self.send_error(f"Unknown event type: {data.get('type')}")
            return
        await handler(data)

    async def send_error(self, message):
        await self.send(text_data=json.dumps({"type": "error", "message": message}))

    def _project_id(self, data):
        try:
            return int(data.get("project_id"))
        except (TypeError, ValueError):
            return None

    # Client events
    async def handle_join(self, data):
        project_id = self._project_id(data)
        if project_id is None:
            await self.send_error("project_id is required")
            return
        if not await self.is_member(project_id):
            await self.send_error("Not a member of this project")
            return
        if project_id in self.joined:
            return

        self.joined.add(project_id)
        await self.channel_layer.group_add(services.project_room(project_id), self.channel_name)

        await self.send(text_data=json.dumps({
            "type": "recent_messages",
            "project_id": project_id,
            "messages": await database_sync_to_async(services.recent_messages)(project_id),
        }))
        users = await database_sync_to_async(services.mark_online)(project_id, self.user)
        await self.channel_layer.group_send(
            services.project_room(project_id),
            {"type": "chat.online_users", "project_id": project_id, "users": users},
        )
        logger.info(f"{self.user.username} joined chat of project {project_id}")

    async def handle_leave(self, data):
        project_id = self._project_id(data)
        if project_id in self.joined:
            await self.leave(project_id)

    async def leave(self, project_id):
        self.joined.discard(project_id)
        room = services.project_room(project_id)
        await self.channel_layer.group_discard(room, self.channel_name)
        users = await database_sync_to_async(services.mark_offline)(project_id, self.user)
        await self.channel_layer.group_send(
            room,
            {"type": "chat.online_users", "project_id": project_id, "users": users},
        )

    async def handle_send_message(self, data):
        project_id = self._project_id(data)
        if project_id not in self.joined:
            await self.send_error("Join the project before sending messages")
            return

        content = (data.get("content") or "").strip()
        if not content:
            await self.send_error("Message content cannot be empty")
            return
        if len(content) > 2000:
            await self.send_error("Message content is too long")
            return

        message = await self.create_message(project_id, content, data.get("reply_to"))
        await self.channel_layer.group_send(
            services.project_room(project_id),
            {"type": "chat.message", "event": "receive_message", "message": message},
        )

    async def handle_typing(self, data):
        await self._relay_typing(data, "chat.typing")

    async def handle_stop_typing(self, data):
        await self._relay_typing(data, "chat.stop_typing")

    async def _relay_typing(self, data, event_type):
        project_id = self._project_id(data)
        if project_id not in self.joined:
            return
        await self.channel_layer.group_send(
            services.project_room(project_id),
            {
                "type": event_type,
                "project_id": project_id,
                "user": {"id": self.user.id, "username": self.user.username, "full_name": self.user.full_name},
                "sender_channel": self.channel_name,
            },
        )

    # Group events
    async def chat_message(self, event):
        await self.send(text_data=json.dumps({
            "type": event.get("event", "receive_message"),
            "message": event["message"],
        }))

    async def chat_online_users(self, event):
        await self.send(text_data=json.dumps({
            "type": "online_users",
            "project_id": event["project_id"],
            "users": event["users"],
        }))

    async def chat_typing(self, event):
        if event["sender_channel"] == self.channel_name:
            return
        await self.send(text_data=json.dumps({
            "type": "user_typing",
            "project_id": event["project_id"],
            "user": event["user"],
        }))

    async def chat_stop_typing(self, event):
        if event["sender_channel"] == self.channel_name:
            return
        await self.send(text_data=json.dumps({
            "type": "user_stop_typing",
            "project_id": event["project_id"],
            "user": event["user"],
        }))

    # Database operations
    @database_sync_to_async
    def is_member(self, project_id):
        project = Project.objects.filter(pk=project_id).first()
        return project is not None and (project.is_member(self.user) or self.user.is_staff)

    @database_sync_to_async
    def create_message(self, project_id, content, reply_to=None):
        reply = None
        if reply_to:
            reply = Message.objects.filter(pk=reply_to, project_id=project_id).first()
        message = Message.objects.create(
            project_id=project_id,
            sender=self.user,
            content=content,
            type=MessageType.TEXT,
            reply_to=reply,
        )
        return services.serialize_message(message)
