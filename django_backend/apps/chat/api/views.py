from django.db import transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import generics, mixins, permissions, viewsets, status
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.response import Response

from apps.chat.models import Message
from apps.chat.services import broadcast_message, RECENT_MESSAGES
from apps.common.responses import envelope
from apps.projects.models import Project
from apps.projects.permissions import IsProjectMember
from .serializers import MessageSerializer, MessageUpdateSerializer

MAX_PAGE_SIZE = 100


class ProjectMessagesView(generics.GenericAPIView):
    """
    Chat history of a project, oldest first. ``before`` (a message id) pages
    backwards; ``limit`` caps the page. POST persists and broadcasts to the room.
    """

    serializer_class = MessageSerializer

    def get_project(self):
        project = get_object_or_404(Project, pk=self.kwargs["project_id"])
        if not project.is_member(self.request.user) and not self.request.user.is_staff:
            raise PermissionDenied("Not a project member")
        return project

    def get(self, request, project_id):
        project = self.get_project()
        try:
            limit = min(int(request.query_params.get("limit", RECENT_MESSAGES)), MAX_PAGE_SIZE)
            before = int(request.query_params.get("before", 0))
        except ValueError:
            raise ValidationError("limit and before must be integers.")

        qs = project.messages.filter(is_deleted=False).select_related("sender")
        if before:
            qs = qs.filter(id__lt=before)

        page = list(qs.order_by("-created_at", "-id")[:max(limit, 1)])
        page.reverse()
        request.user.messages_read.add(*[m for m in page if m.sender_id != request.user.id])
        return Response({
            "messages": self.get_serializer(page, many=True).data,
            "has_more": bool(page) and qs.filter(id__lt=page[0].id).exists(),
        })

    def post(self, request, project_id):
        project = self.get_project()
        serializer = self.get_serializer(data=request.data, context={"request": request, "project": project})
        serializer.is_valid(raise_exception=True)
        message = serializer.save(project=project, sender=request.user)
        transaction.on_commit(lambda: broadcast_message(message))
        return envelope(MessageSerializer(message).data, "Message sent", status.HTTP_201_CREATED)


class ProjectUnreadMessagesView(generics.GenericAPIView):
    """Messages from other members the caller has not fetched yet."""

    get_project = ProjectMessagesView.get_project

    def get(self, request, project_id):
        project = self.get_project()
        unread = (
            project.messages.filter(is_deleted=False)
            .exclude(sender=request.user)
            .exclude(read_by=request.user)
            .count()
        )
        return Response({"unread_count": unread})

class MessageViewSet(mixins.RetrieveModelMixin,
                     mixins.UpdateModelMixin,
                     mixins.DestroyModelMixin,
                     viewsets.GenericViewSet):
    permission_classes = [permissions.IsAuthenticated, IsProjectMember]
    queryset = Message.objects.filter(is_deleted=False).select_related("sender", "project")

    def get_serializer_class(self):
        if self.action in ["update", "partial_update"]:
            return MessageUpdateSerializer
        return MessageSerializer

    def update(self, request, *args, **kwargs):
        message = self.get_object()
        if message.sender_id != request.user.id:
            raise PermissionDenied("You can only edit your own messages")

        serializer = MessageUpdateSerializer(message, data=request.data, partial=kwargs.get("partial", False))
        serializer.is_valid(raise_exception=True)
        message = serializer.save(is_edited=True, edited_at=timezone.now())
        transaction.on_commit(lambda: broadcast_message(message, event="message_updated"))
        return envelope(MessageSerializer(message).data, "Message updated")

    def destroy(self, request, *args, **kwargs):
        message = self.get_object()
        if message.sender_id != request.user.id and not message.project.is_owner(request.user):
            raise PermissionDenied("You can only delete your own messages")

        message.is_deleted = True
        message.save(update_fields=["is_deleted"])
        transaction.on_commit(lambda: broadcast_message(message, event="message_deleted"))
        return envelope(message="Message deleted")
