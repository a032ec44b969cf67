from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone


class ProjectCategory(models.TextChoices):
    WEB_DEVELOPMENT = "web_development", "Web Development"
    MOBILE_APP = "mobile_app", "Mobile App"
    DESIGN = "design", "Design"
    WRITING = "writing", "Writing"
    MARKETING = "marketing", "Marketing"
    DATA_SCIENCE = "data_science", "Data Science"
    OTHER = "other", "Other"


class ProjectStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    OPEN = "open", "Open"
    IN_PROGRESS = "in_progress", "In Progress"
    COMPLETED = "completed", "Completed"
    ARCHIVED = "archived", "Archived"


class MemberRole(models.TextChoices):
    OWNER = "owner", "Owner"
    MEMBER = "member", "Member"
    VIEWER = "viewer", "Viewer"


class ApplicationStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    ACCEPTED = "accepted", "Accepted"
    REJECTED = "rejected", "Rejected"
    REMOVED = "removed", "Removed"


class MilestoneStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    IN_PROGRESS = "in_progress", "In Progress"
    COMPLETED = "completed", "Completed"


class Project(models.Model):
    title = models.CharField(max_length=100)
    description = models.TextField(max_length=2000)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="owned_projects"
    )
    category = models.CharField(
        max_length=32,
        choices=ProjectCategory.choices,
        default=ProjectCategory.OTHER
    )
    status = models.CharField(
        max_length=32,
        choices=ProjectStatus.choices,
        default=ProjectStatus.OPEN
    )
    skills_required = models.JSONField(default=list, blank=True)
    tags = models.JSONField(default=list, blank=True)

    budget_min = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True, validators=[MinValueValidator(0)]
    )
    budget_max = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True, validators=[MinValueValidator(0)]
    )
    currency = models.CharField(max_length=3, default="USD")

    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    estimated_duration = models.CharField(max_length=100, blank=True, default="")

    is_public = models.BooleanField(default=True)
    max_members = models.PositiveIntegerField(default=10, validators=[MinValueValidator(1)])

    members = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        through="ProjectMember",
        through_fields=("project", "user"),
        related_name="projects",
        blank=True
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["status", "is_public"]),
            models.Index(fields=["owner"]),
        ]
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.title

    def save(self, *args, **kwargs):
        is_new = self._state.adding
        super().save(*args, **kwargs)
        if is_new:
            ProjectMember.objects.get_or_create(
                project=self, user=self.owner, defaults={"role": MemberRole.OWNER}
            )

    def is_owner(self, user):
        return user is not None and self.owner_id == user.id

    def is_member(self, user):
        if user is None or not user.is_authenticated:
            return False
        return self.is_owner(user) or self.memberships.filter(user_id=user.id).exists()

    def add_member(self, user, role=MemberRole.MEMBER):
        membership, _ = ProjectMember.objects.get_or_create(
            project=self, user=user, defaults={"role": role}
        )
        return membership

    def remove_member(self, user):
        return self.memberships.filter(user=user).delete()[0] > 0

    @property
    def member_count(self):
        return self.memberships.count()

    @property
    def is_full(self):
        return self.member_count >= self.max_members


class ProjectMember(models.Model):
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="memberships")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="project_memberships"
    )
    role = models.CharField(max_length=16, choices=MemberRole.choices, default=MemberRole.MEMBER)
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["project", "user"], name="uq_project_user")
        ]
        ordering = ["joined_at"]

    def __str__(self) -> str:
        return f"{self.user_id} in {self.project_id} ({self.role})"


class ProjectApplication(models.Model):
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="applications")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="project_applications"
    )
    message = models.TextField(blank=True, default="")
    status = models.CharField(
        max_length=16,
        choices=ApplicationStatus.choices,
        default=ApplicationStatus.PENDING
    )
    applied_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["project", "user"], name="uq_application_project_user")
        ]
        ordering = ["-applied_at"]

    def __str__(self) -> str:
        return f"{self.user_id} -> {self.project_id} ({self.status})"


class Milestone(models.Model):
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="milestones")
    title = models.CharField(max_length=200)
    description = models.TextField(max_length=1000, blank=True, default="")
    due_date = models.DateTimeField()
    status = models.CharField(
        max_length=16,
        choices=MilestoneStatus.choices,
        default=MilestoneStatus.PENDING
    )
    progress = models.PositiveSmallIntegerField(
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    completed_at = models.DateTimeField(null=True, blank=True)
    order = models.IntegerField(default=0)
    tasks = models.ManyToManyField("tasks.Task", blank=True, related_name="milestones")
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["project", "status"]),
            models.Index(fields=["project", "order"]),
            models.Index(fields=["due_date"]),
        ]
        ordering = ["order", "due_date"]

    def __str__(self) -> str:
        return self.title

    def save(self, *args, **kwargs):
        if self.status == MilestoneStatus.COMPLETED:
            if not self.completed_at:
                self.completed_at = timezone.now()
                self.progress = 100
        else:
            self.completed_at = None
        super().save(*args, **kwargs)

    @property
    def is_overdue(self):
        if self.status == MilestoneStatus.COMPLETED:
            return False
        return timezone.now() > self.due_date

    @property
    def days_remaining(self):
        if self.status == MilestoneStatus.COMPLETED:
            return 0
        seconds = (self.due_date - timezone.now()).total_seconds()
        return int(-(-seconds // 86400))

    def calculate_progress(self):
        """Percentage of linked tasks that are done; unchanged when nothing is linked."""
        from apps.tasks.models import TaskStatus

        total = self.tasks.count()
        if total == 0:
            return self.progress
        done = self.tasks.filter(status=TaskStatus.DONE).count()
        self.progress = round(done / total * 100)
        return self.progress

    @classmethod
    def refresh_progress(cls, milestones):
        """Recalculate and store the progress of open milestones; completed ones stay at 100."""
        for milestone in milestones:
            if milestone.status == MilestoneStatus.COMPLETED:
                continue
            before = milestone.progress
            if milestone.calculate_progress() != before:
                milestone.save(update_fields=["progress", "updated_at"])

    @classmethod
    def project_progress(cls, project):
        progress = list(cls.objects.filter(project=project, is_active=True).values_list("progress", flat=True))
        if not progress:
            return 0
        return round(sum(progress) / len(progress))
