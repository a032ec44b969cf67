from django.contrib.auth import get_user_model
from rest_framework import serializers

from apps.users.models import Review, REVIEW_CATEGORIES

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    full_name = serializers.ReadOnlyField()

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "first_name",
            "last_name",
            "display_name",
            "full_name",
            "bio",
            "skills",
            "avatar",
            "hourly_rate",
            "role",
        ]
        read_only_fields = ["role"]


class UserSummarySerializer(serializers.ModelSerializer):
    full_name = serializers.ReadOnlyField()

    class Meta:
        model = User
        fields = ["id", "username", "full_name", "avatar"]


class UserUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["email", "first_name", "last_name", "display_name", "bio", "skills", "avatar", "hourly_rate"]


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=6)

    class Meta:
        model = User
        fields = ["id", "username", "email", "password", "first_name", "last_name"]
        read_only_fields = ["id"]

    def create(self, validated_data):
        return User.objects.create_user(**validated_data)


class ReviewSerializer(serializers.ModelSerializer):
    reviewer = UserSummarySerializer(read_only=True)
    average_category_rating = serializers.ReadOnlyField()

    class Meta:
        model = Review
        fields = [
            "id",
            "project",
            "reviewer",
            "reviewee",
            "rating",
            *REVIEW_CATEGORIES,
            "average_category_rating",
            "comment",
            "is_public",
            "response",
            "created_at",
        ]
        read_only_fields = ["id", "project", "reviewer", "response", "created_at"]

    def validate(self, attrs):
        project = self.context["project"]
        reviewer = self.context["request"].user
        reviewee = attrs["reviewee"]

        if reviewee == reviewer:
            raise serializers.ValidationError({"reviewee": "You cannot review yourself."})
        if not project.is_member(reviewee):
            raise serializers.ValidationError({"reviewee": "Reviewee is not a member of this project."})
        if Review.objects.filter(project=project, reviewer=reviewer, reviewee=reviewee).exists():
            raise serializers.ValidationError("You have already reviewed this user for this project.")
        return attrs
