from channels.db import database_sync_to_async
from channels.testing import WebsocketCommunicator
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TransactionTestCase
from rest_framework_simplejwt.tokens import RefreshToken

from apps.chat.models import Message
from apps.projects.models import Project
from config.asgi import application

User = get_user_model()


def auth_headers(user):
    token = RefreshToken.for_user(user).access_token
    return [(b"authorization", f"Bearer {token}".encode())]


class ProjectChatConsumerTest(TransactionTestCase):
    """Test cases for the project chat socket"""

    def setUp(self):
        cache.clear()
        self.owner = User.objects.create_user(username="owner", password="x")
        self.member = User.objects.create_user(username="member", password="x")
        self.outsider = User.objects.create_user(username="outsider", password="x")
        self.project = Project.objects.create(title="Chatty", description="x", owner=self.owner)
        self.project.add_member(self.member)

    async def connect(self, user):
        communicator = WebsocketCommunicator(application, "/ws/chat/", headers=auth_headers(user))
        connected, _ = await communicator.connect()
        self.assertTrue(connected)
        return communicator

    async def join(self, communicator):
        await communicator.send_json_to({"type": "join_project", "project_id": self.project.id})
        recent = await communicator.receive_json_from()
        online = await communicator.receive_json_from()
        return recent, online

    async def test_unauthenticated_connection_is_closed(self):
        communicator = WebsocketCommunicator(application, "/ws/chat/")

        connected, code = await communicator.connect()

        self.assertFalse(connected)
        self.assertEqual(code, 4001)

    async def test_join_sends_recent_messages_and_presence(self):
        await database_sync_to_async(Message.objects.create)(
            project=self.project, sender=self.owner, content="welcome"
        )
        communicator = await self.connect(self.member)

        recent, online = await self.join(communicator)

        self.assertEqual(recent["type"], "recent_messages")
        self.assertEqual([m["content"] for m in recent["messages"]], ["welcome"])
        self.assertEqual(online["type"], "online_users")
        self.assertEqual([u["username"] for u in online["users"]], ["member"])
        await communicator.disconnect()

    async def test_outsider_cannot_join(self):
        communicator = await self.connect(self.outsider)

        await communicator.send_json_to({"type": "join_project", "project_id": self.project.id})

        event = await communicator.receive_json_from()
        self.assertEqual(event["type"], "error")
        await communicator.disconnect()

    async def test_send_message_persists_and_broadcasts(self):
        owner = await self.connect(self.owner)
        await self.join(owner)
        member = await self.connect(self.member)
        await self.join(member)
        await owner.receive_json_from()  # online_users after member joined

        await member.send_json_to({"type": "send_message", "project_id": self.project.id, "content": "hi"})

        for communicator in (owner, member):
            event = await communicator.receive_json_from()
            self.assertEqual(event["type"], "receive_message")
            self.assertEqual(event["message"]["content"], "hi")
            self.assertEqual(event["message"]["sender"]["username"], "member")
        self.assertEqual(await database_sync_to_async(Message.objects.filter(content="hi").count)(), 1)

        await owner.disconnect()
        await member.disconnect()

    async def test_send_message_requires_join(self):
        communicator = await self.connect(self.member)

        await communicator.send_json_to({"type": "send_message", "project_id": self.project.id, "content": "hi"})

        event = await communicator.receive_json_from()
        self.assertEqual(event["type"], "error")
        await communicator.disconnect()

    async def test_typing_is_relayed_to_others_only(self):
        owner = await self.connect(self.owner)
        await self.join(owner)
        member = await self.connect(self.member)
        await self.join(member)
        await owner.receive_json_from()

        await member.send_json_to({"type": "typing", "project_id": self.project.id})
        event = await owner.receive_json_from()
        self.assertEqual(event["type"], "user_typing")
        self.assertEqual(event["user"]["username"], "member")
        self.assertTrue(await member.receive_nothing())

        await member.send_json_to({"type": "stop_typing", "project_id": self.project.id})
        event = await owner.receive_json_from()
        self.assertEqual(event["type"], "user_stop_typing")

        await owner.disconnect()
        await member.disconnect()

    async def test_leaving_updates_presence(self):
        owner = await self.connect(self.owner)
        await self.join(owner)
        member = await self.connect(self.member)
        await self.join(member)
        await owner.receive_json_from()

        await member.send_json_to({"type": "leave_project", "project_id": self.project.id})

        event = await owner.receive_json_from()
        self.assertEqual(event["type"], "online_users")
        self.assertEqual([u["username"] for u in event["users"]], ["owner"])

        await owner.disconnect()
        await member.disconnect()

    async def test_non_object_frame_returns_error(self):
        communicator = await self.connect(self.member)
        await self.join(communicator)

        await communicator.send_json_to([1, 2])
        event = await communicator.receive_json_from()
        self.assertEqual(event["type"], "error")

        await communicator.send_to(text_data='"x"')
        event = await communicator.receive_json_from()
        self.assertEqual(event["type"], "error")

        await communicator.send_json_to({"type": "send_message", "project_id": self.project.id, "content": "still here"})
        event = await communicator.receive_json_from()
        self.assertEqual(event["type"], "receive_message")
        await communicator.disconnect()

    async def test_second_session_keeps_user_online(self):
        first = await self.connect(self.member)
        await self.join(first)
        second = await self.connect(self.member)
        await self.join(second)
        await first.receive_json_from()

        await second.send_json_to({"type": "leave_project", "project_id": self.project.id})

        event = await first.receive_json_from()
        self.assertEqual([u["username"] for u in event["users"]], ["member"])
        await first.disconnect()
        await second.disconnect()
