import logging

from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import generics, mixins, permissions, viewsets, status
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.filters import SearchFilter, OrderingFilter
from rest_framework.response import Response

from apps.common.responses import envelope
from apps.notifications.models import NotificationType
from apps.notifications.services import create_and_emit_notification
from apps.projects.models import (
    Project, ProjectApplication, ProjectStatus, ApplicationStatus, Milestone, MilestoneStatus
)
from apps.projects.permissions import IsProjectMember, IsProjectOwnerOrReadOnly
from apps.tasks.board import BOARD_COLUMNS
from apps.tasks.models import Task, TaskStatus
from .serializers import (
    ProjectSerializer, ProjectApplicationSerializer, HandleApplicationSerializer, MilestoneSerializer,
    MilestoneReorderSerializer,
)

logger = logging.getLogger(__name__)


class ProjectViewSet(viewsets.ModelViewSet):
    serializer_class = ProjectSerializer
    permission_classes = [permissions.IsAuthenticated, IsProjectOwnerOrReadOnly]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    filterset_fields = ["category", "status"]
    search_fields = ["title", "description"]
    ordering_fields = ["created_at", "budget_max", "end_date"]
    ordering = ["-created_at"]

    def get_queryset(self):
        qs = Project.objects.select_related("owner").prefetch_related("memberships__user")
        if self.action == "list":
            return qs.filter(is_public=True, status=ProjectStatus.OPEN)
        return qs

    def retrieve(self, request, *args, **kwargs):
        project = self.get_object()
        if not project.is_public and not project.is_member(request.user) and not request.user.is_staff:
            raise PermissionDenied("This project is private")
        return Response(self.get_serializer(project).data)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        project = serializer.save(owner=request.user)
        logger.info(f"Project {project.id} created by {request.user.username}")
        return envelope(self.get_serializer(project).data, "Project created", status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):
        project = self.get_object()
        project.delete()
        return envelope(message="Project deleted")

    @action(detail=False, methods=["get"])
    def mine(self, request):
        qs = (
            Project.objects.filter(Q(owner=request.user) | Q(memberships__user=request.user))
            .select_related("owner")
            .prefetch_related("memberships__user")
            .distinct()
            .order_by("-created_at")
        )
        return Response(self.get_serializer(qs, many=True).data)

    @action(detail=True, methods=["post"], permission_classes=[permissions.IsAuthenticated])
    def apply(self, request, pk=None):
        project = self.get_object()

        if not project.is_public:
            raise PermissionDenied("This project is private")
        if project.status != ProjectStatus.OPEN:
            raise ValidationError("This project is not accepting applications.")
        if project.is_member(request.user):
            raise ValidationError("You are already a member of this project.")
        if project.is_full:
            raise ValidationError("This project is full.")

        application = ProjectApplication.objects.filter(project=project, user=request.user).first()
        if application and application.status == ApplicationStatus.PENDING:
            raise ValidationError("You have already applied to this project.")

        message = request.data.get("message", "")
        if application:
            application.status = ApplicationStatus.PENDING
            application.message = message
            application.save(update_fields=["status", "message", "updated_at"])
        else:
            application = ProjectApplication.objects.create(
                project=project, user=request.user, message=message
            )

        create_and_emit_notification(
            recipient=project.owner,
            sender=request.user,
            type=NotificationType.PROJECT_APPLICATION,
            title="New project application",
            message=f"{request.user.full_name} applied to {project.title}",
            link=f"/projects/{project.id}/applications",
            project=project,
        )
        return envelope(
            ProjectApplicationSerializer(application).data,
            "Application submitted",
            status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["get"])
    def applications(self, request, pk=None):
        project = self.get_object()
        if not project.is_owner(request.user):
            raise PermissionDenied("Only the project owner can view applications")
        qs = project.applications.select_related("user")
        return Response(ProjectApplicationSerializer(qs, many=True).data)

    @action(
        detail=True,
        methods=["put", "post"],
        url_path=r"applications/(?P<application_id>\d+)/handle",
        permission_classes=[permissions.IsAuthenticated],
    )
    def handle_application(self, request, pk=None, application_id=None):
        project = self.get_object()
        if not project.is_owner(request.user):
            raise PermissionDenied("Only the project owner can handle applications")

        application = get_object_or_404(ProjectApplication, pk=application_id, project=project)
        if application.status != ApplicationStatus.PENDING:
            raise ValidationError("This application has already been handled.")

        ser = HandleApplicationSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        decision = ser.validated_data["status"]

        with transaction.atomic():
            if decision == ApplicationStatus.ACCEPTED:
                if project.is_full:
                    raise ValidationError("This project is full.")
                project.add_member(application.user)
                notification_type = NotificationType.APPLICATION_ACCEPTED
                title = "Application accepted"
            else:
                notification_type = NotificationType.APPLICATION_REJECTED
                title = "Application rejected"

            application.status = decision
            application.save(update_fields=["status", "updated_at"])

            create_and_emit_notification(
                recipient=application.user,
                sender=request.user,
                type=notification_type,
                title=title,
                message=f"Your application to {project.title} was {decision}",
                link=f"/projects/{project.id}",
                project=project,
            )

        return envelope(ProjectApplicationSerializer(application).data, f"Application {decision}")

    @action(
        detail=True,
        methods=["delete"],
        url_path=r"members/(?P<user_id>\d+)",
        permission_classes=[permissions.IsAuthenticated],
    )
    def remove_member(self, request, pk=None, user_id=None):
        project = self.get_object()
        if not project.is_owner(request.user):
            raise PermissionDenied("Only the project owner can remove members")
        if int(user_id) == project.owner_id:
            raise ValidationError("The project owner cannot be removed.")

        membership = get_object_or_404(project.memberships.select_related("user"), user_id=user_id)
        member = membership.user
        membership.delete()
        ProjectApplication.objects.filter(project=project, user=member).update(
            status=ApplicationStatus.REMOVED
        )

        create_and_emit_notification(
            recipient=member,
            sender=request.user,
            type=NotificationType.MEMBER_REMOVED,
            title="Removed from project",
            message=f"You were removed from {project.title}",
            project=project,
        )
        return envelope(message="Member removed")

    @action(detail=True, methods=["get"], permission_classes=[permissions.IsAuthenticated, IsProjectMember])
    def progress(self, request, pk=None):
        project = self.get_object()
        counts = {column: 0 for column in BOARD_COLUMNS}
        for row in project.tasks.values("status"):
            counts[row["status"]] = counts.get(row["status"], 0) + 1

        total = sum(counts.values())
        done = counts[TaskStatus.DONE.value]
        milestones = project.milestones.filter(is_active=True)
        Milestone.refresh_progress(milestones.prefetch_related("tasks"))

        return Response({
            "tasks": {"total": total, "by_status": counts},
            "completion_rate": round(done / total * 100) if total else 0,
            "milestones": {
                "total": milestones.count(),
                "completed": milestones.filter(status=MilestoneStatus.COMPLETED).count(),
                "progress": Milestone.project_progress(project),
            },
        })


class ProjectMilestonesView(generics.GenericAPIView):
    serializer_class = MilestoneSerializer

    def get_project(self):
        project = get_object_or_404(Project, pk=self.kwargs["project_id"])
        if not project.is_member(self.request.user):
            raise PermissionDenied("Not a project member")
        return project

    def get(self, request, project_id):
        project = self.get_project()
        qs = project.milestones.filter(is_active=True).prefetch_related("tasks")
        Milestone.refresh_progress(qs)
        return Response(self.get_serializer(qs, many=True).data)

    def post(self, request, project_id):
        project = self.get_project()
        if not project.is_owner(request.user):
            raise PermissionDenied("Only the project owner can create milestones")

        serializer = self.get_serializer(data=request.data, context={"request": request, "project": project})
        serializer.is_valid(raise_exception=True)
        milestone = serializer.save(project=project)
        return envelope(MilestoneSerializer(milestone).data, "Milestone created", status.HTTP_201_CREATED)


class ProjectMilestonesReorderView(generics.GenericAPIView):
    serializer_class = MilestoneReorderSerializer
    get_project = ProjectMilestonesView.get_project

    def put(self, request, project_id):
        project = self.get_project()
        serializer = self.get_serializer(data=request.data, context={"request": request, "project": project})
        serializer.is_valid(raise_exception=True)

        with transaction.atomic():
            for item in serializer.validated_data["milestones"]:
                Milestone.objects.filter(project=project, pk=item["id"]).update(order=item["order"])

        qs = project.milestones.filter(is_active=True).prefetch_related("tasks")
        return envelope(MilestoneSerializer(qs, many=True).data, "Milestones reordered")


class MilestoneViewSet(mixins.RetrieveModelMixin,
                       mixins.UpdateModelMixin,
                       mixins.DestroyModelMixin,
                       viewsets.GenericViewSet):
    serializer_class = MilestoneSerializer
    permission_classes = [permissions.IsAuthenticated, IsProjectMember, IsProjectOwnerOrReadOnly]
    queryset = Milestone.objects.select_related("project").prefetch_related("tasks")

    def destroy(self, request, *args, **kwargs):
        self.get_object().delete()
        return envelope(message="Milestone deleted")

    @action(detail=True, methods=["put", "post"])
    def complete(self, request, pk=None):
        milestone = self.get_object()
        milestone.status = MilestoneStatus.COMPLETED
        milestone.save()
        return envelope(self.get_serializer(milestone).data, "Milestone completed")

    @action(detail=True, methods=["post"], url_path="recalculate")
    def recalculate(self, request, pk=None):
        milestone = self.get_object()
        milestone.calculate_progress()
        milestone.save(update_fields=["progress", "updated_at"])
        return Response(self.get_serializer(milestone).data)

    @action(
        detail=True,
        methods=["post", "delete"],
        url_path=r"tasks/(?P<task_id>\d+)",
        permission_classes=[permissions.IsAuthenticated, IsProjectMember],
    )
    def link_task(self, request, pk=None, task_id=None):
        milestone = self.get_object()
        task = Task.objects.filter(pk=task_id, project_id=milestone.project_id).first()
        if task is None:
            raise ValidationError("Task does not belong to this project.")

        if request.method == "POST":
            milestone.tasks.add(task)
            message = "Task linked to milestone"
        else:
            milestone.tasks.remove(task)
            message = "Task unlinked from milestone"

        if milestone.status != MilestoneStatus.COMPLETED:
            milestone.calculate_progress()
            milestone.save(update_fields=["progress", "updated_at"])
        logger.info(f"{message}: milestone {milestone.id}, task {task.id}")
        return envelope(self.get_serializer(milestone).data, message)
