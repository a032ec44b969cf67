"""
Chat room helpers shared by the REST views and the socket consumer:
message serialization, room broadcast and cache-backed presence.
"""
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.cache import cache

from apps.projects.models import ProjectMember
from .models import Message

logger = logging.getLogger(__name__)

RECENT_MESSAGES = 50
PRESENCE_TIMEOUT = 60 * 60 * 12


def project_room(project_id):
    return f"project_{project_id}"


def serialize_user(user):
    return {"id": user.id, "username": user.username, "full_name": user.full_name, "avatar": user.avatar}


def serialize_message(message):
    return {
        "id": message.id,
        "project": message.project_id,
        "sender": serialize_user(message.sender),
        "content": "" if message.is_deleted else message.content,
        "type": message.type,
        "reply_to": message.reply_to_id,
        "is_edited": message.is_edited,
        "is_deleted": message.is_deleted,
        "created_at": message.created_at.isoformat() if message.created_at else None,
    }


def recent_messages(project_id, limit=RECENT_MESSAGES):
    """Last ``limit`` visible messages of a project, oldest first."""
    qs = (
        Message.objects.filter(project_id=project_id, is_deleted=False)
        .select_related("sender")
        .order_by("-created_at", "-id")[:limit]
    )
    return [serialize_message(m) for m in reversed(list(qs))]


def broadcast_message(message, event="receive_message"):
    channel_layer = get_channel_layer()
    if channel_layer is None:
        logger.warning("Channel layer not configured, message %s not broadcast", message.id)
        return False
    try:
        async_to_sync(channel_layer.group_send)(
            project_room(message.project_id),
            {"type": "chat.message", "event": event, "message": serialize_message(message)},
        )
    except Exception as e:
        logger.error(f"Error broadcasting message {message.id}: {e}")
        return False
    return True


def _presence_key(project_id, user_id):
    return f"chat:presence:{project_id}:{user_id}"


def mark_online(project_id, user):
    """Count one more open session of ``user`` in the project room."""
    key = _presence_key(project_id, user.id)
    cache.add(key, 0, PRESENCE_TIMEOUT)
    try:
        cache.incr(key)
    except ValueError:
        # expired between add and incr
        cache.add(key, 1, PRESENCE_TIMEOUT)
    cache.touch(key, PRESENCE_TIMEOUT)
    return online_users(project_id)


def mark_offline(project_id, user):
    try:
        cache.decr(_presence_key(project_id, user.id))
    except ValueError:
        logger.debug(f"No presence counter for user {user.id} in project {project_id}")
    return online_users(project_id)


def online_users(project_id):
    """Project members with at least one open chat session, by user id."""
    users = [
        m.user for m in
        ProjectMember.objects.filter(project_id=project_id).select_related("user").order_by("user_id")
    ]
    counts = cache.get_many([_presence_key(project_id, u.id) for u in users])
    return [
        serialize_user(u) for u in users
        if counts.get(_presence_key(project_id, u.id), 0) > 0
    ]
