from rest_framework import mixins, viewsets
from rest_framework.decorators import action
from django.utils import timezone

from apps.common.pagination import page_params, paginate
from apps.common.responses import envelope
from apps.notifications.models import Notification
from .serializers import NotificationSerializer


class NotificationViewSet(mixins.ListModelMixin, mixins.DestroyModelMixin, viewsets.GenericViewSet):
    serializer_class = NotificationSerializer

    def get_queryset(self):
        return Notification.objects.filter(recipient=self.request.user).select_related("sender")

    def list(self, request, *args, **kwargs):
        page, limit = page_params(request)
        unread_only = request.query_params.get("unread_only", "false").lower() == "true"

        qs = self.get_queryset()
        if unread_only:
            qs = qs.filter(is_read=False)

        items, total, total_pages = paginate(qs, page, limit)

        return envelope({
            "notifications": self.get_serializer(items, many=True).data,
            "total_pages": total_pages,
            "current_page": page,
            "total_notifications": total,
            "unread_count": Notification.objects.filter(recipient=request.user, is_read=False).count(),
        })

    def destroy(self, request, *args, **kwargs):
        self.get_object().delete()
        return envelope(message="Notification deleted")

    @action(detail=True, methods=["put", "patch"])
    def read(self, request, pk=None):
        notification = self.get_object()
        notification.mark_as_read()
        return envelope(self.get_serializer(notification).data, "Notification marked as read")

    @action(detail=False, methods=["put", "patch"], url_path="read-all")
    def read_all(self, request):
        updated = Notification.objects.filter(recipient=request.user, is_read=False).update(
            is_read=True, read_at=timezone.now()
        )
        return envelope({"updated": updated}, "All notifications marked as read")

    @action(detail=False, methods=["get"], url_path="unread-count")
    def unread_count(self, request):
        count = Notification.objects.filter(recipient=request.user, is_read=False).count()
        return envelope({"unread_count": count})
