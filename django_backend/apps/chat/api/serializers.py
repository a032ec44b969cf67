from rest_framework import serializers

from apps.chat.models import Message
from apps.users.api.serializers import UserSummarySerializer


class MessageSerializer(serializers.ModelSerializer):
    sender = UserSummarySerializer(read_only=True)

    class Meta:
        model = Message
        fields = [
            "id",
            "project",
            "sender",
            "content",
            "type",
            "reply_to",
            "is_edited",
            "is_deleted",
            "created_at",
        ]
        read_only_fields = ["id", "project", "sender", "is_edited", "is_deleted", "created_at"]

    def validate_content(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Message content cannot be empty.")
        return value

    def validate_reply_to(self, reply_to):
        project = self.context.get("project")
        if reply_to is not None and project is not None and reply_to.project_id != project.id:
            raise serializers.ValidationError("Cannot reply to a message from another project.")
        return reply_to

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if instance.is_deleted:
            data["content"] = ""
        return data


class MessageUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Message
        fields = ["content"]

    def validate_content(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Message content cannot be empty.")
        return value
