from django.conf import settings
from django.db import models


class MessageType(models.TextChoices):
    TEXT = "text", "Text"
    FILE = "file", "File"
    SYSTEM = "system", "System"


class Message(models.Model):
    project = models.ForeignKey(
        "projects.Project",
        on_delete=models.CASCADE,
        related_name="messages"
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="messages_sent"
    )
    content = models.TextField(max_length=2000)
    type = models.CharField(max_length=16, choices=MessageType.choices, default=MessageType.TEXT)
    reply_to = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="replies"
    )
    is_edited = models.BooleanField(default=False)
    edited_at = models.DateTimeField(null=True, blank=True)
    is_deleted = models.BooleanField(default=False)
    read_by = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name="messages_read"
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=["project", "created_at"])]
        ordering = ["created_at", "id"]

    def __str__(self) -> str:
        return f"Message #{self.pk} in {self.project_id}"
