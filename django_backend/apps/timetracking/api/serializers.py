from rest_framework import serializers

from apps.timetracking.models import TimeEntry


class TimeEntrySerializer(serializers.ModelSerializer):
    current_duration = serializers.ReadOnlyField()
    is_running = serializers.ReadOnlyField()
    earnings = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = TimeEntry
        fields = [
            "id",
            "user",
            "project",
            "task",
            "description",
            "start_time",
            "end_time",
            "duration",
            "current_duration",
            "is_running",
            "billable",
            "hourly_rate",
            "earnings",
            "created_at",
        ]
        read_only_fields = ["id", "user", "duration", "created_at"]
        extra_kwargs = {"hourly_rate": {"required": False}}

    def validate(self, attrs):
        user = self.context["request"].user
        project = attrs.get("project", getattr(self.instance, "project", None))
        task = attrs.get("task", getattr(self.instance, "task", None))

        if project is not None and not project.is_member(user):
            raise serializers.ValidationError({"project": "Not a member of this project."})
        if task is not None:
            if project is None:
                attrs["project"] = project = task.project
            elif task.project_id != project.id:
                raise serializers.ValidationError({"task": "Task does not belong to this project."})
            if not task.project.is_member(user):
                raise serializers.ValidationError({"task": "Not a member of this task's project."})

        start = attrs.get("start_time", getattr(self.instance, "start_time", None))
        end = attrs.get("end_time", getattr(self.instance, "end_time", None))
        if start and end and end < start:
            raise serializers.ValidationError({"end_time": "End time cannot be before start time."})
        return attrs


class StartTimerSerializer(TimeEntrySerializer):
    class Meta(TimeEntrySerializer.Meta):
        read_only_fields = TimeEntrySerializer.Meta.read_only_fields + ["start_time", "end_time"]


class StopTimerSerializer(serializers.Serializer):
    entry_id = serializers.IntegerField(required=False, min_value=1)
