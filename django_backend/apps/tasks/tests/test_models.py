from datetime import timedelta

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone

from apps.projects.models import Project
from apps.tasks.board import BOARD_COLUMNS, group_by_status
from apps.tasks.models import Task, Subtask, TaskStatus, TaskPriority

User = get_user_model()


class TaskModelTest(TestCase):
    """Test cases for Task model"""

    def setUp(self):
        self.owner = User.objects.create_user(username="owner", password="testpass123")
        self.project = Project.objects.create(title="Board", description="Kanban", owner=self.owner)
        self.task = Task.objects.create(project=self.project, title="Write docs", created_by=self.owner)

    def test_defaults(self):
        self.assertEqual(self.task.status, TaskStatus.TODO)
        self.assertEqual(self.task.priority, TaskPriority.MEDIUM)
        self.assertEqual(self.task.labels, [])
        self.assertIsNone(self.task.completed_at)
        self.assertEqual(str(self.task), "Write docs")

    def test_completed_at_follows_done_status(self):
        """Test that completed_at is set on done and cleared when leaving done"""
        self.task.status = TaskStatus.DONE
        self.task.save()
        self.assertIsNotNone(self.task.completed_at)

        self.task.status = TaskStatus.REVIEW
        self.task.save()
        self.assertIsNone(self.task.completed_at)

    def test_completed_at_saved_with_update_fields(self):
        self.task.status = TaskStatus.DONE
        self.task.save(update_fields=["status"])

        self.task.refresh_from_db()
        self.assertIsNotNone(self.task.completed_at)

    def test_is_overdue(self):
        self.assertFalse(self.task.is_overdue)

        self.task.deadline = timezone.now() - timedelta(hours=1)
        self.assertTrue(self.task.is_overdue)

        self.task.status = TaskStatus.DONE
        self.assertFalse(self.task.is_overdue)

    def test_subtasks_progress(self):
        self.assertEqual(self.task.subtasks_progress, 0)

        Subtask.objects.create(task=self.task, title="a", completed=True)
        Subtask.objects.create(task=self.task, title="b")
        Subtask.objects.create(task=self.task, title="c")

        self.assertEqual(self.task.subtasks_progress, 33)


class GroupByStatusTest(TestCase):
    """Test cases for grouping tasks into board columns"""

    def setUp(self):
        self.owner = User.objects.create_user(username="owner", password="testpass123")
        self.project = Project.objects.create(title="Board", description="Kanban", owner=self.owner)

    def test_columns_in_board_order(self):
        self.assertEqual(BOARD_COLUMNS, ["todo", "in_progress", "review", "done"])

    def test_every_column_present_and_order_preserved(self):
        first = Task.objects.create(project=self.project, title="1", created_by=self.owner, status=TaskStatus.REVIEW)
        second = Task.objects.create(project=self.project, title="2", created_by=self.owner, status=TaskStatus.REVIEW)
        third = Task.objects.create(project=self.project, title="3", created_by=self.owner)

        grouped = group_by_status([first, second, third])

        self.assertEqual(list(grouped), BOARD_COLUMNS)
        self.assertEqual(grouped["review"], [first, second])
        self.assertEqual(grouped["todo"], [third])
        self.assertEqual(grouped["in_progress"], [])
        self.assertEqual(grouped["done"], [])

    def test_serialize_hook(self):
        task = Task.objects.create(project=self.project, title="1", created_by=self.owner)

        grouped = group_by_status([task], serialize=lambda t: t.id)

        self.assertEqual(grouped["todo"], [task.id])
