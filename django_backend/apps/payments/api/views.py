import logging
from decimal import Decimal

from django.db.models import Q, Sum
from django.shortcuts import get_object_or_404
from rest_framework import generics, mixins, permissions, viewsets, status
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.response import Response

from apps.common.responses import envelope
from apps.notifications.models import NotificationType
from apps.notifications.services import create_and_emit_notification
from apps.payments.models import Payment, PaymentStatus, InvalidTransition
from apps.projects.models import Project
from apps.projects.permissions import IsProjectMember
from .serializers import PaymentSerializer, RefundSerializer

logger = logging.getLogger(__name__)


CENTS = Decimal("0.01")


def _total(qs):
    total = qs.aggregate(total=Sum("amount"))["total"] or Decimal("0")
    return total.quantize(CENTS)


class ProjectPaymentsView(generics.GenericAPIView):
    """
    Payments of a project. The owner sees all of them; other members only the
    ones addressed to them.
    """

    serializer_class = PaymentSerializer

    def get_project(self):
        project = get_object_or_404(Project, pk=self.kwargs["project_id"])
        if not project.is_member(self.request.user) and not self.request.user.is_staff:
            raise PermissionDenied("Not a project member")
        return project

    def get(self, request, project_id):
        project = self.get_project()
        qs = project.payments.select_related("payer", "recipient")
        if not project.is_owner(request.user) and not request.user.is_staff:
            qs = qs.filter(Q(recipient=request.user) | Q(payer=request.user))

        return Response({
            "payments": self.get_serializer(qs, many=True).data,
            "summary": {
                "total_paid": str(_total(qs.filter(status=PaymentStatus.RELEASED))),
                "in_escrow": str(_total(qs.filter(status=PaymentStatus.HELD_IN_ESCROW))),
                "pending": str(_total(qs.filter(status=PaymentStatus.PENDING))),
            },
        })

    def post(self, request, project_id):
        project = self.get_project()
        if not project.is_owner(request.user):
            raise PermissionDenied("Only the project owner can create payments")

        serializer = self.get_serializer(data=request.data, context={"request": request, "project": project})
        serializer.is_valid(raise_exception=True)
        payment = serializer.save(project=project, payer=request.user)

        create_and_emit_notification(
            recipient=payment.recipient,
            sender=request.user,
            type=NotificationType.PAYMENT_UPDATED,
            title="New payment",
            message=f"{payment.amount} {payment.currency} payment created for {project.title}",
            link=f"/projects/{project.id}/payments",
            project=project,
        )
        logger.info(f"Payment {payment.id} created in project {project.id}")
        return envelope(PaymentSerializer(payment).data, "Payment created", status.HTTP_201_CREATED)


class PaymentViewSet(mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = PaymentSerializer
    permission_classes = [permissions.IsAuthenticated, IsProjectMember]
    queryset = Payment.objects.select_related("project", "payer", "recipient")

    @action(detail=False, methods=["get"])
    def earnings(self, request):
        received = Payment.objects.filter(recipient=request.user)
        return Response({
            "total_earned": str(_total(received.filter(status=PaymentStatus.RELEASED))),
            "in_escrow": str(_total(received.filter(status=PaymentStatus.HELD_IN_ESCROW))),
            "pending": str(_total(received.filter(status=PaymentStatus.PENDING))),
            "payments": received.count(),
        })

    def _move(self, request, new_status, message, reason=""):
        payment = self.get_object()
        if not payment.project.is_owner(request.user):
            raise PermissionDenied("Only the project owner can change payment status")

        try:
            payment.transition(new_status, reason=reason)
        except InvalidTransition as e:
            raise ValidationError(str(e))

        create_and_emit_notification(
            recipient=payment.recipient,
            sender=request.user,
            type=NotificationType.PAYMENT_UPDATED,
            title="Payment updated",
            message=f"Payment of {payment.amount} {payment.currency} is now {payment.get_status_display().lower()}",
            link=f"/projects/{payment.project_id}/payments",
            project=payment.project,
        )
        logger.info(f"Payment {payment.id} moved to {new_status}")
        return envelope(self.get_serializer(payment).data, message)

    @action(detail=True, methods=["post", "put"])
    def escrow(self, request, pk=None):
        return self._move(request, PaymentStatus.HELD_IN_ESCROW, "Payment held in escrow")

    @action(detail=True, methods=["post", "put"])
    def release(self, request, pk=None):
        return self._move(request, PaymentStatus.RELEASED, "Payment released")

    @action(detail=True, methods=["post", "put"])
    def refund(self, request, pk=None):
        ser = RefundSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        return self._move(request, PaymentStatus.REFUNDED, "Payment refunded", reason=ser.validated_data["reason"])
