from datetime import timedelta

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.test import TestCase
from django.utils import timezone

from apps.projects.models import Project, ProjectMember, MemberRole, Milestone, MilestoneStatus
from apps.tasks.models import Task, TaskStatus

User = get_user_model()


class ProjectModelTest(TestCase):
    """Test cases for Project model"""

    def setUp(self):
        self.owner = User.objects.create_user(username="owner", password="testpass123")
        self.member = User.objects.create_user(username="member", password="testpass123")
        self.outsider = User.objects.create_user(username="outsider", password="testpass123")
        self.project = Project.objects.create(title="Shop", description="An online shop", owner=self.owner)

    def test_owner_becomes_member_on_create(self):
        membership = ProjectMember.objects.get(project=self.project, user=self.owner)
        self.assertEqual(membership.role, MemberRole.OWNER)
        self.assertEqual(self.project.member_count, 1)

    def test_saving_again_does_not_duplicate_owner_membership(self):
        self.project.title = "Shop v2"
        self.project.save()
        self.assertEqual(self.project.member_count, 1)

    def test_is_member(self):
        self.project.add_member(self.member)

        self.assertTrue(self.project.is_member(self.owner))
        self.assertTrue(self.project.is_member(self.member))
        self.assertFalse(self.project.is_member(self.outsider))
        self.assertFalse(self.project.is_member(AnonymousUser()))

    def test_remove_member(self):
        self.project.add_member(self.member)

        self.assertTrue(self.project.remove_member(self.member))
        self.assertFalse(self.project.is_member(self.member))
        self.assertFalse(self.project.remove_member(self.member))

    def test_is_full(self):
        self.project.max_members = 2
        self.project.save()
        self.assertFalse(self.project.is_full)

        self.project.add_member(self.member)
        self.assertTrue(self.project.is_full)


class MilestoneModelTest(TestCase):
    """Test cases for Milestone model"""

    def setUp(self):
        self.owner = User.objects.create_user(username="owner", password="testpass123")
        self.project = Project.objects.create(title="Shop", description="An online shop", owner=self.owner)
        self.milestone = Milestone.objects.create(
            project=self.project, title="MVP", due_date=timezone.now() + timedelta(days=10)
        )

    def make_task(self, status=TaskStatus.TODO):
        return Task.objects.create(project=self.project, title="t", created_by=self.owner, status=status)

    def test_completing_sets_completed_at_and_full_progress(self):
        self.milestone.status = MilestoneStatus.COMPLETED
        self.milestone.save()

        self.assertIsNotNone(self.milestone.completed_at)
        self.assertEqual(self.milestone.progress, 100)
        self.assertFalse(self.milestone.is_overdue)

    def test_reopening_clears_completed_at(self):
        self.milestone.status = MilestoneStatus.COMPLETED
        self.milestone.save()
        self.milestone.status = MilestoneStatus.IN_PROGRESS
        self.milestone.save()

        self.assertIsNone(self.milestone.completed_at)

    def test_is_overdue(self):
        self.milestone.due_date = timezone.now() - timedelta(days=1)
        self.assertTrue(self.milestone.is_overdue)

    def test_days_remaining(self):
        self.milestone.due_date = timezone.now() + timedelta(days=2, hours=1)
        self.assertEqual(self.milestone.days_remaining, 3)

    def test_calculate_progress_from_linked_tasks(self):
        self.milestone.tasks.set([
            self.make_task(TaskStatus.DONE),
            self.make_task(TaskStatus.DONE),
            self.make_task(TaskStatus.REVIEW),
        ])

        self.assertEqual(self.milestone.calculate_progress(), 67)

    def test_calculate_progress_without_tasks_keeps_value(self):
        self.milestone.progress = 40
        self.assertEqual(self.milestone.calculate_progress(), 40)

    def test_project_progress_is_mean_of_milestones(self):
        self.milestone.progress = 50
        self.milestone.save()
        Milestone.objects.create(
            project=self.project, title="Launch", due_date=timezone.now(), progress=0
        )
        Milestone.objects.create(
            project=self.project, title="Done", due_date=timezone.now(), status=MilestoneStatus.COMPLETED
        )

        self.assertEqual(Milestone.project_progress(self.project), 50)

    def test_project_progress_without_milestones(self):
        other = Project.objects.create(title="Empty", description="x", owner=self.owner)
        self.assertEqual(Milestone.project_progress(other), 0)
