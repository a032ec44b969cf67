from datetime import timedelta

from django.contrib.auth import get_user_model
from django.core import mail
from django.test import TestCase, override_settings
from django.utils import timezone

from apps.notifications.models import Notification, NotificationType
from apps.projects.models import Project, Milestone, MilestoneStatus
from apps.tasks.celery_tasks import send_deadline_reminders
from apps.tasks.models import Task, TaskStatus

User = get_user_model()


@override_settings(TASK_REMINDER_DAYS=3, MILESTONE_REMINDER_DAYS=5)
class DeadlineRemindersTest(TestCase):
    """Test cases for the daily deadline reminder job"""

    def setUp(self):
        self.owner = User.objects.create_user(username="owner", email="owner@example.com")
        self.dev = User.objects.create_user(username="dev", email="dev@example.com")
        self.project = Project.objects.create(title="Board", description="Kanban", owner=self.owner)
        self.project.add_member(self.dev)
        self.now = timezone.now()

    def task(self, **fields):
        fields.setdefault("assignee", self.dev)
        return Task.objects.create(project=self.project, title="t", created_by=self.owner, **fields)

    def test_reminds_assignee_of_task_due_soon(self):
        task = self.task(deadline=self.now + timedelta(days=2))

        sent = send_deadline_reminders()

        self.assertEqual(sent, 1)
        notification = Notification.objects.get(type=NotificationType.TASK_DEADLINE)
        self.assertEqual(notification.recipient, self.dev)
        self.assertEqual(notification.task, task)
        self.assertEqual(mail.outbox[0].to, ["dev@example.com"])

    def test_skips_done_far_and_unassigned_tasks(self):
        self.task(deadline=self.now + timedelta(days=1), status=TaskStatus.DONE)
        self.task(deadline=self.now + timedelta(days=10))
        self.task(deadline=self.now + timedelta(days=1), assignee=None)
        self.task(deadline=self.now - timedelta(days=1))

        self.assertEqual(send_deadline_reminders(), 0)

    def test_reminds_only_once_per_day(self):
        self.task(deadline=self.now + timedelta(days=1))

        send_deadline_reminders()
        send_deadline_reminders()

        self.assertEqual(Notification.objects.filter(type=NotificationType.TASK_DEADLINE).count(), 1)

    def test_reminds_every_member_of_milestone_due_soon(self):
        Milestone.objects.create(project=self.project, title="Beta", due_date=self.now + timedelta(days=4))
        Milestone.objects.create(
            project=self.project, title="Alpha", due_date=self.now + timedelta(days=1),
            status=MilestoneStatus.COMPLETED,
        )

        sent = send_deadline_reminders()

        self.assertEqual(sent, 2)
        recipients = set(
            Notification.objects.filter(type=NotificationType.MILESTONE_DEADLINE).values_list("recipient", flat=True)
        )
        self.assertEqual(recipients, {self.owner.id, self.dev.id})
