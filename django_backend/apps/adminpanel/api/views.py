import logging
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.db.models import Count, Q
from django.db.models.functions import TruncMonth
from django.utils import timezone
from rest_framework import mixins, permissions, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.adminpanel.models import AdminAction, AdminLog
from apps.common.pagination import page_params, paginate
from apps.common.responses import envelope
from apps.projects.api.serializers import ProjectSerializer
from apps.projects.models import Project, ProjectStatus
from apps.tasks.models import Task, TaskStatus
from apps.users.models import UserRole
from .serializers import AdminLogSerializer, AdminUserSerializer, RoleSerializer

logger = logging.getLogger(__name__)

User = get_user_model()

ACTIVE_WINDOW = timedelta(days=30)
TREND_MONTHS = 6
LOG_PAGE_SIZE = 50


def monthly_counts(qs, field):
    since = timezone.now() - timedelta(days=TREND_MONTHS * 31)
    rows = (
        qs.filter(**{f"{field}__gte": since})
        .annotate(month=TruncMonth(field))
        .values("month")
        .annotate(count=Count("id"))
        .order_by("month")
    )
    return [{"month": row["month"].strftime("%Y-%m"), "count": row["count"]} for row in rows]


class AdminStatsView(APIView):
    permission_classes = [permissions.IsAdminUser]

    def get(self, request):
        users = User.objects.filter(is_active=True)
        total_tasks = Task.objects.count()
        completed = Task.objects.filter(status=TaskStatus.DONE).count()

        return Response({
            "users": {
                "total": users.count(),
                "active": users.filter(last_login__gte=timezone.now() - ACTIVE_WINDOW).count(),
                "growth": monthly_counts(User.objects.all(), "date_joined"),
            },
            "projects": {
                "total": Project.objects.count(),
                "active": Project.objects.filter(
                    status__in=[ProjectStatus.OPEN, ProjectStatus.IN_PROGRESS]
                ).count(),
                "trends": monthly_counts(Project.objects.all(), "created_at"),
            },
            "tasks": {
                "total": total_tasks,
                "completed": completed,
                "completion_rate": round(completed / total_tasks * 100) if total_tasks else 0,
            },
        })


class AdminUserViewSet(mixins.ListModelMixin, mixins.DestroyModelMixin, viewsets.GenericViewSet):
    """
    User management. Admin and superuser accounts cannot be suspended or
    deleted from here; every change is written to the admin log.
    """

    serializer_class = AdminUserSerializer
    permission_classes = [permissions.IsAdminUser]
    queryset = User.objects.order_by("-date_joined", "-id")

    def list(self, request, *args, **kwargs):
        page, limit = page_params(request)
        qs = self.get_queryset()

        role = request.query_params.get("role")
        if role:
            qs = qs.filter(role=role)
        is_active = request.query_params.get("is_active")
        if is_active is not None:
            qs = qs.filter(is_active=is_active.lower() == "true")
        search = request.query_params.get("search")
        if search:
            qs = qs.filter(
                Q(first_name__icontains=search)
                | Q(last_name__icontains=search)
                | Q(email__icontains=search)
                | Q(username__icontains=search)
            )

        items, total, total_pages = paginate(qs, page, limit)
        return envelope({
            "users": self.get_serializer(items, many=True).data,
            "total_pages": total_pages,
            "current_page": page,
            "total_users": total,
        })

    def get_protected_target(self, message):
        user = self.get_object()
        if user.role == UserRole.ADMIN or user.is_superuser:
            raise PermissionDenied(message)
        return user

    @action(detail=True, methods=["put", "patch"])
    def status(self, request, pk=None):
        user = self.get_protected_target("Cannot modify admin user status")
        user.is_active = not user.is_active
        user.save(update_fields=["is_active"])

        AdminLog.record(
            request,
            AdminAction.USER_ACTIVATED if user.is_active else AdminAction.USER_SUSPENDED,
            user,
            {"email": user.email},
        )
        state = "activated" if user.is_active else "suspended"
        logger.info(f"Admin {request.user.id} {state} user {user.id}")
        return envelope(self.get_serializer(user).data, f"User {state} successfully")

    @action(detail=True, methods=["put", "patch"])
    def role(self, request, pk=None):
        user = self.get_object()
        if user.is_superuser or user.pk == request.user.pk:
            raise PermissionDenied("Cannot change the role of this account")

        serializer = RoleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        old_role = user.role
        user.set_role(serializer.validated_data["role"])
        user.save(update_fields=["role", "is_staff"])

        AdminLog.record(
            request,
            AdminAction.USER_ROLE_CHANGED,
            user,
            {"email": user.email, "old_role": old_role, "new_role": user.role},
        )
        return envelope(self.get_serializer(user).data, "User role updated successfully")

    def destroy(self, request, *args, **kwargs):
        user = self.get_protected_target("Cannot delete admin user")
        AdminLog.record(request, AdminAction.USER_DELETED, user, {"email": user.email, "role": user.role})
        user.delete()
        logger.info(f"Admin {request.user.id} deleted user {kwargs.get('pk')}")
        return envelope(message="User deleted successfully")


class AdminProjectViewSet(mixins.ListModelMixin, mixins.DestroyModelMixin, viewsets.GenericViewSet):
    serializer_class = ProjectSerializer
    permission_classes = [permissions.IsAdminUser]
    queryset = Project.objects.select_related("owner").prefetch_related("memberships__user")

    def list(self, request, *args, **kwargs):
        page, limit = page_params(request)
        qs = self.get_queryset()

        status = request.query_params.get("status")
        if status:
            qs = qs.filter(status=status)
        search = request.query_params.get("search")
        if search:
            qs = qs.filter(Q(title__icontains=search) | Q(description__icontains=search))

        items, total, total_pages = paginate(qs, page, limit)
        return envelope({
            "projects": self.get_serializer(items, many=True).data,
            "total_pages": total_pages,
            "current_page": page,
            "total_projects": total,
        })

    def destroy(self, request, *args, **kwargs):
        project = self.get_object()
        AdminLog.record(
            request, AdminAction.PROJECT_DELETED, project, {"title": project.title, "owner": project.owner_id}
        )
        project.delete()
        return envelope(message="Project deleted successfully")


class AdminLogViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    serializer_class = AdminLogSerializer
    permission_classes = [permissions.IsAdminUser]
    queryset = AdminLog.objects.select_related("user")

    def list(self, request, *args, **kwargs):
        page, limit = page_params(request, default_limit=LOG_PAGE_SIZE)
        qs = self.get_queryset()
        if request.query_params.get("action"):
            qs = qs.filter(action=request.query_params["action"])

        items, total, total_pages = paginate(qs, page, limit)
        return envelope({
            "logs": self.get_serializer(items, many=True).data,
            "total_pages": total_pages,
            "current_page": page,
            "total_logs": total,
        })
