from rest_framework import serializers

from apps.notifications.models import Notification
from apps.users.api.serializers import UserSummarySerializer


class NotificationSerializer(serializers.ModelSerializer):
    sender = UserSummarySerializer(read_only=True)

    class Meta:
        model = Notification
        fields = [
            "id",
            "type",
            "title",
            "message",
            "link",
            "sender",
            "project",
            "task",
            "is_read",
            "read_at",
            "created_at",
        ]
        read_only_fields = fields
