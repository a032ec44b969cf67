from datetime import timedelta
from unittest import mock

from django.contrib.auth import get_user_model
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase, APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.notifications.models import Notification, NotificationType
from apps.projects.models import (
    Project, ProjectApplication, ApplicationStatus, ProjectStatus, Milestone, MilestoneStatus
)
from apps.tasks.models import Task, TaskStatus

User = get_user_model()


class ProjectAPITestCase(APITestCase):

    def setUp(self):
        self.client = APIClient()
        self.owner = User.objects.create_user(username="owner", password="testpass123")
        self.member = User.objects.create_user(username="member", password="testpass123")
        self.applicant = User.objects.create_user(username="applicant", password="testpass123")
        self.project = Project.objects.create(
            title="Marketplace", description="Two-sided marketplace", owner=self.owner
        )
        self.project.add_member(self.member)
        self.authenticate(self.owner)

    def authenticate(self, user):
        refresh = RefreshToken.for_user(user)
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")


class ProjectCrudAPITest(ProjectAPITestCase):
    """Test cases for browsing, creating and editing projects"""

    def test_create_project_sets_owner(self):
        response = self.client.post(
            reverse("projects-list"),
            {"title": "Blog", "description": "A blog", "category": "writing"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        body = response.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["data"]["owner"]["id"], self.owner.id)
        self.assertEqual(body["data"]["member_count"], 1)

    def test_create_project_validates_budget(self):
        response = self.client.post(
            reverse("projects-list"),
            {"title": "Blog", "description": "A blog", "budget_min": "500", "budget_max": "100"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("budget_max", response.json()["errors"])

    def test_browse_lists_only_public_open_projects(self):
        Project.objects.create(title="Private", description="x", owner=self.owner, is_public=False)
        Project.objects.create(title="Closed", description="x", owner=self.owner, status=ProjectStatus.COMPLETED)

        response = self.client.get(reverse("projects-list"))

        titles = [p["title"] for p in response.json()["data"]]
        self.assertEqual(titles, ["Marketplace"])

    def test_browse_search(self):
        Project.objects.create(title="Mobile game", description="x", owner=self.owner)

        response = self.client.get(reverse("projects-list"), {"search": "game"})

        titles = [p["title"] for p in response.json()["data"]]
        self.assertEqual(titles, ["Mobile game"])

    def test_mine_includes_owned_and_joined_projects(self):
        self.authenticate(self.member)
        Project.objects.create(title="Someone else's", description="x", owner=self.applicant)

        response = self.client.get(reverse("projects-mine"))

        titles = [p["title"] for p in response.json()["data"]]
        self.assertEqual(titles, ["Marketplace"])

    def test_only_owner_can_update(self):
        self.authenticate(self.member)

        response = self.client.patch(
            reverse("projects-detail", args=[self.project.id]), {"title": "Mine now"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(response.json()["success"])

    def test_owner_can_delete(self):
        response = self.client.delete(reverse("projects-detail", args=[self.project.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Project.objects.filter(id=self.project.id).exists())

    def test_private_project_hidden_from_outsiders(self):
        self.project.is_public = False
        self.project.save()
        self.authenticate(self.applicant)

        response = self.client.get(reverse("projects-detail", args=[self.project.id]))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ProjectMembershipAPITest(ProjectAPITestCase):
    """Test cases for applications and member management"""

    def apply(self, user=None):
        self.authenticate(user or self.applicant)
        return self.client.post(
            reverse("projects-apply", args=[self.project.id]), {"message": "Hire me"}, format="json"
        )

    def test_apply_notifies_owner(self):
        response = self.apply()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(
            ProjectApplication.objects.get().status, ApplicationStatus.PENDING
        )
        notification = Notification.objects.get(recipient=self.owner)
        self.assertEqual(notification.type, NotificationType.PROJECT_APPLICATION)
        self.assertEqual(notification.sender, self.applicant)

    def test_apply_twice_is_rejected(self):
        self.apply()
        response = self.apply()

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_member_cannot_apply(self):
        response = self.apply(self.member)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_apply_to_full_project(self):
        self.project.max_members = 2
        self.project.save()

        response = self.apply()

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_apply_to_private_project(self):
        self.project.is_public = False
        self.project.save()

        response = self.apply()

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(ProjectApplication.objects.exists())

    def test_applications_are_owner_only(self):
        self.apply()
        self.authenticate(self.member)

        response = self.client.get(reverse("projects-applications", args=[self.project.id]))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_accept_application_adds_member(self):
        self.apply()
        application = ProjectApplication.objects.get()
        self.authenticate(self.owner)

        with mock.patch("apps.notifications.services.push_notification") as push:
            with self.captureOnCommitCallbacks(execute=True):
                response = self.client.put(
                    reverse("projects-handle-application", args=[self.project.id, application.id]),
                    {"status": "accepted"},
                    format="json",
                )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(self.project.is_member(self.applicant))
        application.refresh_from_db()
        self.assertEqual(application.status, ApplicationStatus.ACCEPTED)
        self.assertEqual(push.call_count, 1)
        self.assertEqual(push.call_args[0][0].type, NotificationType.APPLICATION_ACCEPTED)

    def test_reject_application(self):
        self.apply()
        application = ProjectApplication.objects.get()
        self.authenticate(self.owner)

        response = self.client.put(
            reverse("projects-handle-application", args=[self.project.id, application.id]),
            {"status": "rejected"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(self.project.is_member(self.applicant))
        self.assertTrue(
            Notification.objects.filter(
                recipient=self.applicant, type=NotificationType.APPLICATION_REJECTED
            ).exists()
        )

    def test_handle_application_rejects_unknown_status(self):
        self.apply()
        application = ProjectApplication.objects.get()
        self.authenticate(self.owner)

        response = self.client.put(
            reverse("projects-handle-application", args=[self.project.id, application.id]),
            {"status": "maybe"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_remove_member(self):
        response = self.client.delete(
            reverse("projects-remove-member", args=[self.project.id, self.member.id])
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(self.project.is_member(self.member))
        self.assertTrue(
            Notification.objects.filter(recipient=self.member, type=NotificationType.MEMBER_REMOVED).exists()
        )

    def test_cannot_remove_owner(self):
        response = self.client.delete(
            reverse("projects-remove-member", args=[self.project.id, self.owner.id])
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(self.project.is_member(self.owner))

    def test_member_cannot_remove_members(self):
        self.authenticate(self.member)

        response = self.client.delete(
            reverse("projects-remove-member", args=[self.project.id, self.owner.id])
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ProjectProgressAPITest(ProjectAPITestCase):
    """Test cases for the progress summary"""

    def test_progress(self):
        for task_status in [TaskStatus.TODO, TaskStatus.DONE, TaskStatus.DONE, TaskStatus.REVIEW]:
            Task.objects.create(project=self.project, title="t", created_by=self.owner, status=task_status)
        Milestone.objects.create(
            project=self.project, title="M1", due_date=timezone.now(), status=MilestoneStatus.COMPLETED
        )
        Milestone.objects.create(project=self.project, title="M2", due_date=timezone.now())

        response = self.client.get(reverse("projects-progress", args=[self.project.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()["data"]
        self.assertEqual(data["tasks"]["total"], 4)
        self.assertEqual(
            data["tasks"]["by_status"], {"todo": 1, "in_progress": 0, "review": 1, "done": 2}
        )
        self.assertEqual(data["completion_rate"], 50)
        self.assertEqual(data["milestones"], {"total": 2, "completed": 1, "progress": 50})

    def test_progress_reflects_task_moves(self):
        first = Task.objects.create(project=self.project, title="a", created_by=self.owner)
        second = Task.objects.create(project=self.project, title="b", created_by=self.owner)
        milestone = Milestone.objects.create(project=self.project, title="Beta", due_date=timezone.now())
        milestone.tasks.set([first, second])
        self.authenticate(self.member)

        response = self.client.patch(
            reverse("tasks-detail", args=[first.id]), {"status": "done"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        data = self.client.get(reverse("projects-progress", args=[self.project.id])).json()["data"]
        self.assertEqual(data["milestones"]["progress"], 50)
        milestones = self.client.get(reverse("project-milestones", args=[self.project.id])).json()["data"]
        self.assertEqual([m["progress"] for m in milestones], [50])

    def test_progress_recalculated_on_read(self):
        task = Task.objects.create(project=self.project, title="a", created_by=self.owner)
        milestone = Milestone.objects.create(project=self.project, title="Beta", due_date=timezone.now())
        milestone.tasks.set([task])
        Task.objects.filter(id=task.id).update(status=TaskStatus.DONE)

        data = self.client.get(reverse("projects-progress", args=[self.project.id])).json()["data"]

        self.assertEqual(data["milestones"]["progress"], 100)
        milestone.refresh_from_db()
        self.assertEqual(milestone.progress, 100)

    def test_progress_requires_membership(self):
        self.authenticate(self.applicant)

        response = self.client.get(reverse("projects-progress", args=[self.project.id]))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class MilestoneAPITest(ProjectAPITestCase):
    """Test cases for milestone endpoints"""

    def setUp(self):
        super().setUp()
        self.url = reverse("project-milestones", args=[self.project.id])
        self.due = (timezone.now() + timedelta(days=14)).isoformat()

    def test_owner_creates_milestone_with_tasks(self):
        task = Task.objects.create(project=self.project, title="t", created_by=self.owner)

        response = self.client.post(
            self.url, {"title": "Beta", "due_date": self.due, "tasks": [task.id]}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.json()["data"]["tasks"], [task.id])

    def test_milestone_tasks_must_belong_to_project(self):
        other = Project.objects.create(title="Other", description="x", owner=self.owner)
        foreign = Task.objects.create(project=other, title="t", created_by=self.owner)

        response = self.client.post(
            self.url, {"title": "Beta", "due_date": self.due, "tasks": [foreign.id]}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_member_cannot_create_milestone(self):
        self.authenticate(self.member)

        response = self.client.post(self.url, {"title": "Beta", "due_date": self.due}, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_member_can_list_milestones(self):
        Milestone.objects.create(project=self.project, title="Beta", due_date=timezone.now())
        self.authenticate(self.member)

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.json()["data"]), 1)

    def test_complete_milestone(self):
        milestone = Milestone.objects.create(project=self.project, title="Beta", due_date=timezone.now())

        response = self.client.post(reverse("milestones-complete", args=[milestone.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()["data"]
        self.assertEqual(data["status"], "completed")
        self.assertEqual(data["progress"], 100)

    def test_member_cannot_update_milestone(self):
        milestone = Milestone.objects.create(project=self.project, title="Beta", due_date=timezone.now())
        self.authenticate(self.member)

        response = self.client.patch(
            reverse("milestones-detail", args=[milestone.id]), {"title": "Mine"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_member_links_task_and_progress_follows(self):
        milestone = Milestone.objects.create(project=self.project, title="Beta", due_date=timezone.now())
        done = Task.objects.create(project=self.project, title="d", status=TaskStatus.DONE, created_by=self.owner)
        todo = Task.objects.create(project=self.project, title="t", created_by=self.owner)
        milestone.tasks.add(todo)
        self.authenticate(self.member)

        response = self.client.post(reverse("milestones-link-task", args=[milestone.id, done.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(sorted(response.json()["data"]["tasks"]), sorted([done.id, todo.id]))
        self.assertEqual(response.json()["data"]["progress"], 50)

        response = self.client.delete(reverse("milestones-link-task", args=[milestone.id, todo.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        milestone.refresh_from_db()
        self.assertEqual(list(milestone.tasks.all()), [done])
        self.assertEqual(milestone.progress, 100)

    def test_link_task_from_another_project_rejected(self):
        milestone = Milestone.objects.create(project=self.project, title="Beta", due_date=timezone.now())
        other = Project.objects.create(title="Other", description="x", owner=self.owner)
        foreign = Task.objects.create(project=other, title="t", created_by=self.owner)

        response = self.client.post(reverse("milestones-link-task", args=[milestone.id, foreign.id]))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(milestone.tasks.exists())

    def test_outsider_cannot_link_task(self):
        milestone = Milestone.objects.create(project=self.project, title="Beta", due_date=timezone.now())
        task = Task.objects.create(project=self.project, title="t", created_by=self.owner)
        self.authenticate(self.applicant)

        response = self.client.post(reverse("milestones-link-task", args=[milestone.id, task.id]))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_reorder_milestones(self):
        first = Milestone.objects.create(project=self.project, title="A", due_date=timezone.now(), order=0)
        second = Milestone.objects.create(project=self.project, title="B", due_date=timezone.now(), order=1)
        self.authenticate(self.member)

        response = self.client.put(
            reverse("project-milestones-reorder", args=[self.project.id]),
            {"milestones": [{"id": first.id, "order": 1}, {"id": second.id, "order": 0}]},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([m["title"] for m in response.json()["data"]], ["B", "A"])

    def test_reorder_rejects_foreign_milestones(self):
        other = Project.objects.create(title="Other", description="x", owner=self.owner)
        foreign = Milestone.objects.create(project=other, title="X", due_date=timezone.now(), order=3)

        response = self.client.put(
            reverse("project-milestones-reorder", args=[self.project.id]),
            {"milestones": [{"id": foreign.id, "order": 0}]},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        foreign.refresh_from_db()
        self.assertEqual(foreign.order, 3)
