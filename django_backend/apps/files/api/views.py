import logging

from django.db import transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import generics, mixins, permissions, viewsets, status
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.parsers import MultiPartParser, FormParser, JSONParser
from rest_framework.response import Response

from apps.common.responses import envelope
from apps.files.models import ProjectFile, FileCategory, DeliverableStatus
from apps.notifications.models import NotificationType
from apps.notifications.services import create_and_emit_notification, notify_users
from apps.projects.models import Project
from apps.projects.permissions import IsProjectMember
from .serializers import ProjectFileSerializer, ReviewDeliverableSerializer

logger = logging.getLogger(__name__)


class ProjectFilesView(generics.GenericAPIView):
    serializer_class = ProjectFileSerializer
    parser_classes = [MultiPartParser, FormParser]
    filterset_fields = ["category", "file_type", "is_deliverable", "task"]

    def get_project(self):
        project = get_object_or_404(Project, pk=self.kwargs["project_id"])
        if not project.is_member(self.request.user) and not self.request.user.is_staff:
            raise PermissionDenied("Not a project member")
        return project

    def get_queryset(self):
        return ProjectFile.objects.filter(project_id=self.kwargs["project_id"]).select_related(
            "uploaded_by", "reviewed_by"
        )

    def get(self, request, project_id):
        self.get_project()
        qs = self.filter_queryset(self.get_queryset())
        return Response(self.get_serializer(qs, many=True).data)

    def post(self, request, project_id):
        project = self.get_project()
        serializer = self.get_serializer(data=request.data, context={"request": request, "project": project})
        serializer.is_valid(raise_exception=True)

        with transaction.atomic():
            project_file = serializer.save(project=project, uploaded_by=request.user)
            members = [m.user for m in project.memberships.select_related("user")]
            notify_users(
                members,
                exclude=request.user,
                sender=request.user,
                type=NotificationType.FILE_UPLOADED,
                title="New file uploaded",
                message=f"{request.user.full_name} uploaded {project_file.original_name}",
                link=f"/projects/{project.id}/files",
                project=project,
            )

        logger.info(f"File {project_file.id} uploaded to project {project.id} ({project_file.file_size} bytes)")
        return envelope(
            ProjectFileSerializer(project_file, context={"request": request}).data,
            "File uploaded",
            status.HTTP_201_CREATED,
        )


class ProjectFileViewSet(mixins.RetrieveModelMixin,
                         mixins.DestroyModelMixin,
                         viewsets.GenericViewSet):
    serializer_class = ProjectFileSerializer
    permission_classes = [permissions.IsAuthenticated, IsProjectMember]
    parser_classes = [JSONParser, FormParser, MultiPartParser]
    queryset = ProjectFile.objects.select_related("project", "uploaded_by", "reviewed_by")

    def destroy(self, request, *args, **kwargs):
        project_file = self.get_object()
        if project_file.uploaded_by_id != request.user.id and not project_file.project.is_owner(request.user):
            raise PermissionDenied("Only the uploader or the project owner can delete this file")

        stored = project_file.file
        project_file.delete()
        transaction.on_commit(lambda: stored.delete(save=False))
        return envelope(message="File deleted")

    @action(detail=True, methods=["post"])
    def submit(self, request, pk=None):
        project_file = self.get_object()
        project = project_file.project
        if project_file.uploaded_by_id != request.user.id:
            raise PermissionDenied("Only the uploader can submit this file as a deliverable")
        if project_file.deliverable_status == DeliverableStatus.APPROVED:
            raise ValidationError("This deliverable has already been approved.")

        project_file.is_deliverable = True
        project_file.category = FileCategory.DELIVERABLE
        project_file.deliverable_status = DeliverableStatus.PENDING
        project_file.reviewed_by = None
        project_file.reviewed_at = None
        project_file.review_comments = ""
        project_file.save()

        if not project.is_owner(request.user):
            create_and_emit_notification(
                recipient=project.owner,
                sender=request.user,
                type=NotificationType.DELIVERABLE_SUBMITTED,
                title="Deliverable submitted",
                message=f"{request.user.full_name} submitted {project_file.original_name} for review",
                link=f"/projects/{project.id}/files",
                project=project,
            )

        return envelope(self.get_serializer(project_file).data, "Deliverable submitted")

    @action(detail=True, methods=["post", "put"])
    def review(self, request, pk=None):
        project_file = self.get_object()
        project = project_file.project
        if not project.is_owner(request.user):
            raise PermissionDenied("Only the project owner can review deliverables")
        if not project_file.is_deliverable or project_file.deliverable_status != DeliverableStatus.PENDING:
            raise ValidationError("Only pending deliverables can be reviewed.")

        ser = ReviewDeliverableSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        project_file.deliverable_status = ser.validated_data["status"]
        project_file.review_comments = ser.validated_data["comments"]
        project_file.reviewed_by = request.user
        project_file.reviewed_at = timezone.now()
        project_file.save()

        label = DeliverableStatus(project_file.deliverable_status).label.lower()
        create_and_emit_notification(
            recipient=project_file.uploaded_by,
            sender=request.user,
            type=NotificationType.DELIVERABLE_REVIEWED,
            title="Deliverable reviewed",
            message=f"{project_file.original_name}: {label}",
            link=f"/projects/{project.id}/files",
            project=project,
        )
        return envelope(self.get_serializer(project_file).data, f"Deliverable {label}")
