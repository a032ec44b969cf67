from django.contrib.auth import get_user_model
from rest_framework import serializers

from apps.tasks.models import Comment, Task, Subtask, TaskHistory
from apps.users.api.serializers import UserSummarySerializer

User = get_user_model()


class SubtaskSerializer(serializers.ModelSerializer):
    class Meta:
        model = Subtask
        fields = ["id", "title", "completed", "created_at"]
        read_only_fields = ["id", "created_at"]


class TaskSerializer(serializers.ModelSerializer):
    assignee = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.all(), required=False, allow_null=True
    )
    assignee_detail = UserSummarySerializer(source="assignee", read_only=True)
    created_by = UserSummarySerializer(read_only=True)
    subtasks = SubtaskSerializer(many=True, read_only=True)
    subtasks_progress = serializers.ReadOnlyField()
    is_overdue = serializers.ReadOnlyField()

    class Meta:
        model = Task
        fields = [
            "id",
            "project",
            "title",
            "description",
            "status",
            "priority",
            "assignee",
            "assignee_detail",
            "created_by",
            "deadline",
            "labels",
            "estimated_hours",
            "order",
            "subtasks",
            "subtasks_progress",
            "is_overdue",
            "completed_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "project",
            "created_by",
            "completed_at",
            "created_at",
            "updated_at",
        ]

    def validate_labels(self, labels):
        if not isinstance(labels, list) or not all(isinstance(label, str) for label in labels):
            raise serializers.ValidationError("Labels must be a list of strings.")
        return labels

    def validate_assignee(self, assignee):
        project = self.context.get("project") or getattr(self.instance, "project", None)
        if assignee is not None and project is not None and not project.is_member(assignee):
            raise serializers.ValidationError("Assignee must be a member of the project.")
        return assignee


class TaskHistorySerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = TaskHistory
        fields = ["id", "action", "metadata", "created_at", "user"]


class CommentSerializer(serializers.ModelSerializer):
    author = UserSummarySerializer(read_only=True)
    mentions = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.all(), many=True, required=False
    )

    class Meta:
        model = Comment
        fields = [
            "id",
            "task",
            "author",
            "content",
            "parent",
            "mentions",
            "is_edited",
            "edited_at",
            "created_at",
        ]
        read_only_fields = ["id", "task", "author", "is_edited", "edited_at", "created_at"]

    def validate_content(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Comment cannot be empty.")
        return value

    def validate_parent(self, parent):
        task = self.context.get("task") or getattr(self.instance, "task", None)
        if parent is not None and task is not None and parent.task_id != task.id:
            raise serializers.ValidationError("Cannot reply to a comment on another task.")
        return parent

    def validate_mentions(self, mentions):
        task = self.context.get("task") or getattr(self.instance, "task", None)
        if task is None:
            return mentions
        outsiders = [user.id for user in mentions if not task.project.is_member(user)]
        if outsiders:
            raise serializers.ValidationError(f"Users {outsiders} are not members of this project.")
        return mentions


class CommentUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Comment
        fields = ["content"]

    def validate_content(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Comment cannot be empty.")
        return value
