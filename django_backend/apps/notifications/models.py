from django.conf import settings
from django.db import models
from django.utils import timezone


class NotificationType(models.TextChoices):
    PROJECT_APPLICATION = "project_application", "Project Application"
    APPLICATION_ACCEPTED = "application_accepted", "Application Accepted"
    APPLICATION_REJECTED = "application_rejected", "Application Rejected"
    MEMBER_REMOVED = "member_removed", "Member Removed"
    TASK_ASSIGNED = "task_assigned", "Task Assigned"
    TASK_COMPLETED = "task_completed", "Task Completed"
    TASK_DEADLINE = "task_deadline", "Task Deadline"
    MILESTONE_DEADLINE = "milestone_deadline", "Milestone Deadline"
    FILE_UPLOADED = "file_uploaded", "File Uploaded"
    DELIVERABLE_SUBMITTED = "deliverable_submitted", "Deliverable Submitted"
    DELIVERABLE_REVIEWED = "deliverable_reviewed", "Deliverable Reviewed"
    PAYMENT_UPDATED = "payment_updated", "Payment Updated"
    PROJECT_UPDATED = "project_updated", "Project Updated"
    MESSAGE = "message", "Message"
    COMMENT_MENTION = "comment_mention", "Comment Mention"


class Notification(models.Model):
    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications"
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="notifications_sent"
    )
    type = models.CharField(max_length=32, choices=NotificationType.choices)
    title = models.CharField(max_length=200)
    message = models.TextField()
    link = models.CharField(max_length=255, blank=True, default="")

    project = models.ForeignKey(
        "projects.Project",
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name="notifications"
    )
    task = models.ForeignKey(
        "tasks.Task",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="notifications"
    )

    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=["recipient", "is_read", "created_at"])]
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:
        return f"{self.type} -> {self.recipient_id}"

    def mark_as_read(self):
        if self.is_read:
            return
        self.is_read = True
        self.read_at = timezone.now()
        self.save(update_fields=["is_read", "read_at"])
