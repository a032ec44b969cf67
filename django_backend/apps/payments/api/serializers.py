from decimal import Decimal

from rest_framework import serializers

from apps.payments.models import Payment
from apps.users.api.serializers import UserSummarySerializer


class PaymentSerializer(serializers.ModelSerializer):
    payer = UserSummarySerializer(read_only=True)
    recipient_detail = UserSummarySerializer(source="recipient", read_only=True)

    class Meta:
        model = Payment
        fields = [
            "id",
            "project",
            "milestone",
            "payer",
            "recipient",
            "recipient_detail",
            "amount",
            "currency",
            "status",
            "description",
            "released_at",
            "refunded_at",
            "refund_reason",
            "created_at",
        ]
        read_only_fields = [
            "id",
            "project",
            "payer",
            "status",
            "released_at",
            "refunded_at",
            "refund_reason",
            "created_at",
        ]

    def validate_amount(self, amount):
        if amount <= Decimal("0"):
            raise serializers.ValidationError("Amount must be greater than zero.")
        return amount

    def validate(self, attrs):
        project = self.context["project"]
        recipient = attrs["recipient"]
        milestone = attrs.get("milestone")

        if recipient.id == project.owner_id:
            raise serializers.ValidationError({"recipient": "The project owner cannot pay themselves."})
        if not project.is_member(recipient):
            raise serializers.ValidationError({"recipient": "Recipient must be a member of the project."})
        if milestone is not None and milestone.project_id != project.id:
            raise serializers.ValidationError({"milestone": "Milestone does not belong to this project."})
        return attrs


class RefundSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")
