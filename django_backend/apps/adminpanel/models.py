from django.conf import settings
from django.db import models


class AdminAction(models.TextChoices):
    USER_SUSPENDED = "user_suspended", "User Suspended"
    USER_ACTIVATED = "user_activated", "User Activated"
    USER_DELETED = "user_deleted", "User Deleted"
    USER_ROLE_CHANGED = "user_role_changed", "User Role Changed"
    PROJECT_DELETED = "project_deleted", "Project Deleted"


class AdminLog(models.Model):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        on_delete=models.SET_NULL,
        related_name="admin_logs"
    )
    action = models.CharField(max_length=32, choices=AdminAction.choices)
    target_type = models.CharField(max_length=32, blank=True, default="")
    # Targets are often deleted by the logged action, so this is not a foreign key
    target_id = models.PositiveIntegerField(null=True, blank=True)
    details = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=255, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["-created_at"]),
            models.Index(fields=["action", "-created_at"]),
        ]
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:
        return f"{self.action} {self.target_type}#{self.target_id}"

    @classmethod
    def record(cls, request, action, target, details=None):
        return cls.objects.create(
            user=request.user,
            action=action,
            target_type=type(target).__name__,
            target_id=target.pk,
            details=details or {},
            ip_address=request.META.get("REMOTE_ADDR") or None,
            user_agent=request.META.get("HTTP_USER_AGENT", "")[:255],
        )
