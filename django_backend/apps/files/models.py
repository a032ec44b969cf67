import mimetypes
import os

from django.conf import settings
from django.db import models


class FileCategory(models.TextChoices):
    GENERAL = "general", "General"
    DELIVERABLE = "deliverable", "Deliverable"
    REFERENCE = "reference", "Reference"
    ASSET = "asset", "Asset"
    REPORT = "report", "Report"


class DeliverableStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"
    REVISION_REQUESTED = "revision_requested", "Revision Requested"


DOCUMENT_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "text/plain",
    "text/csv",
    "text/markdown",
}
ARCHIVE_TYPES = {
    "application/zip",
    "application/x-zip-compressed",
    "application/x-tar",
    "application/gzip",
    "application/x-7z-compressed",
    "application/x-rar-compressed",
}


def file_type_for(mime_type):
    """Coarse bucket of a MIME type: image, video, audio, document, archive or other."""
    mime_type = (mime_type or "").lower()
    major = mime_type.split("/", 1)[0]
    if major in ("image", "video", "audio"):
        return major
    if mime_type in DOCUMENT_TYPES:
        return "document"
    if mime_type in ARCHIVE_TYPES:
        return "archive"
    return "other"


def project_upload_to(instance, filename):
    return f"projects/{instance.project_id}/{filename}"


class ProjectFile(models.Model):
    project = models.ForeignKey(
        "projects.Project",
        on_delete=models.CASCADE,
        related_name="files"
    )
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="uploaded_files"
    )
    task = models.ForeignKey(
        "tasks.Task",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="files"
    )

    file = models.FileField(upload_to=project_upload_to)
    original_name = models.CharField(max_length=255)
    mime_type = models.CharField(max_length=100, blank=True, default="")
    file_size = models.PositiveBigIntegerField(default=0)
    file_type = models.CharField(max_length=16, default="other")
    category = models.CharField(max_length=16, choices=FileCategory.choices, default=FileCategory.GENERAL)
    description = models.TextField(max_length=500, blank=True, default="")

    is_deliverable = models.BooleanField(default=False)
    deliverable_status = models.CharField(
        max_length=24,
        choices=DeliverableStatus.choices,
        null=True,
        blank=True
    )
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="reviewed_files"
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    review_comments = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["project", "created_at"]),
            models.Index(fields=["project", "is_deliverable"]),
        ]
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:
        return self.original_name

    def save(self, *args, **kwargs):
        if self.file and not self.original_name:
            self.original_name = os.path.basename(self.file.name)
        if not self.mime_type:
            self.mime_type = mimetypes.guess_type(self.original_name or "")[0] or "application/octet-stream"
        self.file_type = file_type_for(self.mime_type)
        super().save(*args, **kwargs)
