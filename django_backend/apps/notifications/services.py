"""
Create notifications and push them to the recipient's socket room.

Delivery is fire-and-forget: the row is the source of truth, the socket push
happens once after the surrounding transaction commits, and a push failure is
logged and otherwise ignored. Clients recover missed pushes by polling the
unread count or re-fetching the list.
"""
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction

from .models import Notification

logger = logging.getLogger(__name__)


def user_room(user_id):
    return f"user_{user_id}"


def serialize_notification(notification):
    sender = notification.sender
    return {
        "id": notification.id,
        "type": notification.type,
        "title": notification.title,
        "message": notification.message,
        "link": notification.link,
        "sender": {
            "id": sender.id,
            "username": sender.username,
            "full_name": sender.full_name,
            "avatar": sender.avatar,
        } if sender else None,
        "project": notification.project_id,
        "task": notification.task_id,
        "is_read": notification.is_read,
        "created_at": notification.created_at.isoformat() if notification.created_at else None,
    }


def push_notification(notification):
    """Send one ``new_notification`` event to the recipient's room."""
    channel_layer = get_channel_layer()
    if channel_layer is None:
        logger.warning("Channel layer not configured, notification %s not pushed", notification.id)
        return False

    try:
        async_to_sync(channel_layer.group_send)(
            user_room(notification.recipient_id),
            {
                "type": "notification.new",
                "notification": serialize_notification(notification),
            }
        )
    except Exception as e:
        logger.error(f"Error pushing notification {notification.id}: {e}")
        return False

    logger.info(f"Notification {notification.id} pushed to {user_room(notification.recipient_id)}")
    return True


def create_and_emit_notification(*, recipient, type, title, message, sender=None,
                                 link="", project=None, task=None):
    notification = Notification.objects.create(
        recipient=recipient,
        sender=sender,
        type=type,
        title=title,
        message=message,
        link=link,
        project=project,
        task=task,
    )
    transaction.on_commit(lambda: push_notification(notification))
    return notification


def notify_users(recipients, *, exclude=None, **fields):
    """
    Notify each distinct recipient once. ``exclude`` (usually the acting user)
    never receives a notification about their own action.
    """
    seen = set()
    created = []
    for user in recipients:
        if user is None or user.id in seen:
            continue
        seen.add(user.id)
        if exclude is not None and user.id == exclude.id:
            continue
        created.append(create_and_emit_notification(recipient=user, **fields))
    return created
