import logging

from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import generics, mixins, permissions, viewsets, status
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response

from apps.common.responses import envelope
from apps.notifications.models import NotificationType
from apps.notifications.services import create_and_emit_notification, notify_users
from apps.projects.models import Milestone, Project
from apps.projects.permissions import IsProjectMember
from apps.tasks.board import group_by_status
from apps.tasks.models import Comment, Task, Subtask, TaskHistory, TaskAction, TaskStatus
from .serializers import (
    TaskSerializer, SubtaskSerializer, TaskHistorySerializer, CommentSerializer, CommentUpdateSerializer
)

logger = logging.getLogger(__name__)


def notify_assignee(task, actor):
    if task.assignee_id is None or task.assignee_id == actor.id:
        return
    create_and_emit_notification(
        recipient=task.assignee,
        sender=actor,
        type=NotificationType.TASK_ASSIGNED,
        title="New task assigned",
        message=f"You were assigned to '{task.title}'",
        link=f"/projects/{task.project_id}/tasks",
        project=task.project,
        task=task,
    )


class ProjectTasksView(generics.GenericAPIView):
    """The project's board: every task, plus the same tasks grouped by column."""

    serializer_class = TaskSerializer
    filterset_fields = ["status", "priority", "assignee"]

    def get_project(self):
        project = get_object_or_404(Project, pk=self.kwargs["project_id"])
        if not project.is_member(self.request.user) and not self.request.user.is_staff:
            raise PermissionDenied("Not a project member")
        return project

    def get_queryset(self):
        return (
            Task.objects.filter(project_id=self.kwargs["project_id"])
            .select_related("assignee", "created_by", "project")
            .prefetch_related("subtasks")
            .order_by("-created_at", "-id")
        )

    def get(self, request, project_id):
        self.get_project()
        tasks = list(self.filter_queryset(self.get_queryset()))
        serializer = self.get_serializer()
        serialized = [serializer.to_representation(t) for t in tasks]
        return Response({
            "tasks": serialized,
            "grouped_tasks": group_by_status(tasks, serialize=serializer.to_representation),
            "count": len(tasks),
        })

    def post(self, request, project_id):
        project = self.get_project()
        if not project.is_owner(request.user):
            raise PermissionDenied("Only the project owner can create tasks")

        serializer = self.get_serializer(data=request.data, context={"request": request, "project": project})
        serializer.is_valid(raise_exception=True)
        task = serializer.save(project=project, created_by=request.user)
        TaskHistory.objects.create(task=task, user=request.user, action=TaskAction.CREATED)
        notify_assignee(task, request.user)

        logger.info(f"Task {task.id} created in project {project.id}")
        return envelope(TaskSerializer(task).data, "Task created", status.HTTP_201_CREATED)


class TaskViewSet(mixins.RetrieveModelMixin,
                  mixins.UpdateModelMixin,
                  mixins.DestroyModelMixin,
                  viewsets.GenericViewSet):
    serializer_class = TaskSerializer
    permission_classes = [permissions.IsAuthenticated, IsProjectMember]
    queryset = Task.objects.select_related("project", "assignee", "created_by").prefetch_related("subtasks")

    def perform_update(self, serializer):
        old_status = serializer.instance.status
        old_assignee_id = serializer.instance.assignee_id
        task = serializer.save()
        user = self.request.user

        if old_status != task.status:
            TaskHistory.objects.create(
                task=task,
                user=user,
                action=TaskAction.STATUS_CHANGED,
                metadata={"from": old_status, "to": task.status}
            )
            Milestone.refresh_progress(task.milestones.filter(is_active=True))
            if task.status == TaskStatus.DONE and not task.project.is_owner(user):
                create_and_emit_notification(
                    recipient=task.project.owner,
                    sender=user,
                    type=NotificationType.TASK_COMPLETED,
                    title="Task completed",
                    message=f"{user.full_name} completed '{task.title}'",
                    link=f"/projects/{task.project_id}/tasks",
                    project=task.project,
                    task=task,
                )
        else:
            TaskHistory.objects.create(task=task, user=user, action=TaskAction.UPDATED)

        if task.assignee_id != old_assignee_id:
            notify_assignee(task, user)

    def destroy(self, request, *args, **kwargs):
        task = self.get_object()
        if not task.project.is_owner(request.user) and task.created_by_id != request.user.id:
            raise PermissionDenied("Only the project owner or the task creator can delete this task")
        task.delete()
        return envelope(message="Task deleted")

    @action(detail=True, methods=["post"])
    def subtasks(self, request, pk=None):
        task = self.get_object()
        ser = SubtaskSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        subtask = ser.save(task=task)
        TaskHistory.objects.create(
            task=task,
            user=request.user,
            action=TaskAction.UPDATED,
            metadata={"subtask_added": subtask.id}
        )
        return envelope(SubtaskSerializer(subtask).data, "Subtask added", status.HTTP_201_CREATED)

    @subtasks.mapping.get
    def list_subtasks(self, request, pk=None):
        task = self.get_object()
        return Response(SubtaskSerializer(task.subtasks.all(), many=True).data)

    @action(detail=True, methods=["patch", "put"], url_path=r"subtasks/(?P<subtask_id>\d+)")
    def subtask_detail(self, request, pk=None, subtask_id=None):
        task = self.get_object()
        subtask = get_object_or_404(Subtask, pk=subtask_id, task=task)
        if "completed" in request.data or "title" in request.data:
            ser = SubtaskSerializer(subtask, data=request.data, partial=True)
            ser.is_valid(raise_exception=True)
            ser.save()
        else:
            subtask.completed = not subtask.completed
            subtask.save(update_fields=["completed"])
        return Response(SubtaskSerializer(subtask).data)

    @subtask_detail.mapping.delete
    def delete_subtask(self, request, pk=None, subtask_id=None):
        task = self.get_object()
        subtask = get_object_or_404(Subtask, pk=subtask_id, task=task)
        subtask.delete()
        return envelope(message="Subtask deleted")

    @action(detail=True, methods=["post"])
    def comments(self, request, pk=None):
        task = self.get_object()
        ser = CommentSerializer(data=request.data, context={"request": request, "task": task})
        ser.is_valid(raise_exception=True)
        comment = ser.save(task=task, author=request.user)
        TaskHistory.objects.create(
            task=task,
            user=request.user,
            action=TaskAction.COMMENTED,
            metadata={"comment_id": comment.id}
        )
        notify_users(
            comment.mentions.all(),
            exclude=request.user,
            sender=request.user,
            type=NotificationType.COMMENT_MENTION,
            title="You were mentioned in a comment",
            message=f"{request.user.full_name} mentioned you on '{task.title}'",
            link=f"/projects/{task.project_id}/tasks",
            project=task.project,
            task=task,
        )
        return envelope(CommentSerializer(comment).data, "Comment added", status.HTTP_201_CREATED)

    @comments.mapping.get
    def list_comments(self, request, pk=None):
        task = self.get_object()
        qs = task.comments.select_related("author").prefetch_related("mentions")
        return Response(CommentSerializer(qs, many=True).data)

    @action(detail=True, methods=["get"])
    def history(self, request, pk=None):
        task = self.get_object()
        qs = task.history.select_related("user")
        return Response(TaskHistorySerializer(qs, many=True).data)


class CommentViewSet(mixins.RetrieveModelMixin,
                     mixins.UpdateModelMixin,
                     mixins.DestroyModelMixin,
                     viewsets.GenericViewSet):
    """Single comments; only their author may edit or delete them."""

    permission_classes = [permissions.IsAuthenticated, IsProjectMember]
    queryset = Comment.objects.select_related("author", "task__project").prefetch_related("mentions")

    def get_serializer_class(self):
        if self.action in ["update", "partial_update"]:
            return CommentUpdateSerializer
        return CommentSerializer

    def update(self, request, *args, **kwargs):
        comment = self.get_object()
        if comment.author_id != request.user.id:
            raise PermissionDenied("Not authorized to edit this comment")

        ser = CommentUpdateSerializer(comment, data=request.data, partial=kwargs.get("partial", False))
        ser.is_valid(raise_exception=True)
        comment = ser.save(is_edited=True, edited_at=timezone.now())
        return envelope(CommentSerializer(comment).data, "Comment updated")

    def destroy(self, request, *args, **kwargs):
        comment = self.get_object()
        if comment.author_id != request.user.id:
            raise PermissionDenied("Not authorized to delete this comment")
        comment.delete()
        return envelope(message="Comment deleted")
