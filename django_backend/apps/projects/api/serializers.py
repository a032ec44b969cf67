from rest_framework import serializers

from apps.projects.models import Project, ProjectMember, ProjectApplication, Milestone
from apps.users.api.serializers import UserSummarySerializer


class ProjectMemberSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = ProjectMember
        fields = ["id", "user", "role", "joined_at"]


class ProjectSerializer(serializers.ModelSerializer):
    owner = UserSummarySerializer(read_only=True)
    members = ProjectMemberSerializer(source="memberships", many=True, read_only=True)
    member_count = serializers.ReadOnlyField()
    is_full = serializers.ReadOnlyField()

    class Meta:
        model = Project
        fields = [
            "id",
            "title",
            "description",
            "owner",
            "category",
            "status",
            "skills_required",
            "tags",
            "budget_min",
            "budget_max",
            "currency",
            "start_date",
            "end_date",
            "estimated_duration",
            "is_public",
            "max_members",
            "members",
            "member_count",
            "is_full",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "owner", "created_at", "updated_at"]

    def validate(self, attrs):
        budget_min = attrs.get("budget_min", getattr(self.instance, "budget_min", None))
        budget_max = attrs.get("budget_max", getattr(self.instance, "budget_max", None))
        if budget_min is not None and budget_max is not None and budget_min > budget_max:
            raise serializers.ValidationError({"budget_max": "Must be greater than or equal to budget_min."})

        start = attrs.get("start_date", getattr(self.instance, "start_date", None))
        end = attrs.get("end_date", getattr(self.instance, "end_date", None))
        if start and end and end < start:
            raise serializers.ValidationError({"end_date": "End date cannot be before start date."})
        return attrs


class ProjectApplicationSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = ProjectApplication
        fields = ["id", "project", "user", "message", "status", "applied_at"]
        read_only_fields = ["id", "project", "user", "status", "applied_at"]


class HandleApplicationSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=["accepted", "rejected"])


class MilestoneSerializer(serializers.ModelSerializer):
    is_overdue = serializers.ReadOnlyField()
    days_remaining = serializers.ReadOnlyField()

    class Meta:
        model = Milestone
        fields = [
            "id",
            "project",
            "title",
            "description",
            "due_date",
            "status",
            "progress",
            "completed_at",
            "order",
            "tasks",
            "is_active",
            "is_overdue",
            "days_remaining",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "project", "completed_at", "created_at", "updated_at"]
        extra_kwargs = {"tasks": {"required": False}}

    def validate_tasks(self, tasks):
        project = self.context.get("project") or getattr(self.instance, "project", None)
        foreign = [t.id for t in tasks if project is not None and t.project_id != project.id]
        if foreign:
            raise serializers.ValidationError(f"Tasks {foreign} do not belong to this project.")
        return tasks


class MilestoneOrderSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    order = serializers.IntegerField(min_value=0)


class MilestoneReorderSerializer(serializers.Serializer):
    milestones = MilestoneOrderSerializer(many=True, allow_empty=False)

    def validate_milestones(self, items):
        project = self.context["project"]
        ids = [item["id"] for item in items]
        if len(set(ids)) != len(ids):
            raise serializers.ValidationError("Milestones are listed more than once.")
        known = set(project.milestones.filter(id__in=ids).values_list("id", flat=True))
        foreign = [i for i in ids if i not in known]
        if foreign:
            raise serializers.ValidationError(f"Milestones {foreign} do not belong to this project.")
        return items
