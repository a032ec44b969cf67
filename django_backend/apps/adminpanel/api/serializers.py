from django.contrib.auth import get_user_model
from rest_framework import serializers

from apps.adminpanel.models import AdminLog
from apps.users.api.serializers import UserSerializer, UserSummarySerializer
from apps.users.models import UserRole

User = get_user_model()


class AdminUserSerializer(UserSerializer):
    class Meta(UserSerializer.Meta):
        fields = UserSerializer.Meta.fields + ["is_active", "is_staff", "last_login", "date_joined"]
        read_only_fields = fields


class RoleSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=UserRole.choices)


class AdminLogSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = AdminLog
        fields = ["id", "user", "action", "target_type", "target_id", "details", "ip_address", "user_agent",
                  "created_at"]
        read_only_fields = fields
