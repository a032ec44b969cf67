import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail
from django.utils import timezone

from apps.notifications.models import Notification, NotificationType
from apps.notifications.services import create_and_emit_notification
from apps.projects.models import Milestone, MilestoneStatus
from apps.tasks.models import Task, TaskStatus

logger = logging.getLogger(__name__)


def _emails(users):
    return sorted({u.email for u in users if getattr(u, "email", None)})


def _notify(users, subject, body):
    recipients = _emails(users)
    if not recipients:
        return 0
    send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, recipients, fail_silently=True)
    return len(recipients)


def _already_reminded(user, type, title, today_start, **target):
    return Notification.objects.filter(
        recipient=user, type=type, title=title, created_at__gte=today_start, **target
    ).exists()


def _remind(user, type, title, message, link, today_start, **target):
    """Create one reminder per recipient per target per day, plus an email."""
    if _already_reminded(user, type, title, today_start, **target):
        return False
    create_and_emit_notification(
        recipient=user, type=type, title=title, message=message, link=link, **target
    )
    _notify([user], f"[Reminder] {title}", message)
    return True


@shared_task
def send_deadline_reminders():
    """
    Remind assignees about open tasks due within TASK_REMINDER_DAYS and
    project members about open milestones due within MILESTONE_REMINDER_DAYS.
    Returns the number of reminders created.
    """
    now = timezone.now()
    today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    sent = 0

    task_horizon = now + timedelta(days=settings.TASK_REMINDER_DAYS)
    tasks = (
        Task.objects.select_related("assignee", "project")
        .filter(assignee__isnull=False, deadline__gte=now, deadline__lte=task_horizon)
        .exclude(status=TaskStatus.DONE)
    )
    for task in tasks:
        if _remind(
            task.assignee,
            NotificationType.TASK_DEADLINE,
            f"Task due soon: {task.title}",
            f"'{task.title}' is due on {task.deadline:%Y-%m-%d %H:%M}",
            f"/projects/{task.project_id}/tasks",
            today_start,
            project=task.project,
            task=task,
        ):
            sent += 1

    milestone_horizon = now + timedelta(days=settings.MILESTONE_REMINDER_DAYS)
    milestones = (
        Milestone.objects.select_related("project")
        .filter(is_active=True, due_date__gte=now, due_date__lte=milestone_horizon)
        .exclude(status=MilestoneStatus.COMPLETED)
    )
    for milestone in milestones:
        project = milestone.project
        for membership in project.memberships.select_related("user"):
            if _remind(
                membership.user,
                NotificationType.MILESTONE_DEADLINE,
                f"Milestone due soon: {milestone.title}",
                f"Milestone '{milestone.title}' of {project.title} is due on {milestone.due_date:%Y-%m-%d}",
                f"/projects/{project.id}/milestones",
                today_start,
                project=project,
            ):
                sent += 1

    logger.info(f"Deadline reminders sent: {sent}")
    return sent
