from rest_framework import serializers

from apps.files.models import ProjectFile, DeliverableStatus
from apps.users.api.serializers import UserSummarySerializer

MAX_UPLOAD_SIZE = 25 * 1024 * 1024


class ProjectFileSerializer(serializers.ModelSerializer):
    uploaded_by = UserSummarySerializer(read_only=True)
    reviewed_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = ProjectFile
        fields = [
            "id",
            "project",
            "uploaded_by",
            "task",
            "file",
            "original_name",
            "mime_type",
            "file_size",
            "file_type",
            "category",
            "description",
            "is_deliverable",
            "deliverable_status",
            "reviewed_by",
            "reviewed_at",
            "review_comments",
            "created_at",
        ]
        read_only_fields = [
            "id",
            "project",
            "uploaded_by",
            "original_name",
            "mime_type",
            "file_size",
            "file_type",
            "is_deliverable",
            "deliverable_status",
            "reviewed_by",
            "reviewed_at",
            "review_comments",
            "created_at",
        ]

    def validate_file(self, upload):
        if upload.size > MAX_UPLOAD_SIZE:
            raise serializers.ValidationError("File is too large (max 25 MB).")
        return upload

    def validate_task(self, task):
        project = self.context.get("project")
        if task is not None and project is not None and task.project_id != project.id:
            raise serializers.ValidationError("Task does not belong to this project.")
        return task

    def create(self, validated_data):
        upload = validated_data["file"]
        validated_data.setdefault("original_name", upload.name)
        validated_data.setdefault("mime_type", getattr(upload, "content_type", "") or "")
        validated_data.setdefault("file_size", upload.size)
        return super().create(validated_data)


class ReviewDeliverableSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[
        DeliverableStatus.APPROVED,
        DeliverableStatus.REJECTED,
        DeliverableStatus.REVISION_REQUESTED,
    ])
    comments = serializers.CharField(required=False, allow_blank=True, default="")
