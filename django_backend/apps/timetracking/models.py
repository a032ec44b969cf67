from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


class TimeEntry(models.Model):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="time_entries"
    )
    project = models.ForeignKey(
        "projects.Project",
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name="time_entries"
    )
    task = models.ForeignKey(
        "tasks.Task",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="time_entries"
    )
    description = models.CharField(max_length=500, blank=True, default="")
    start_time = models.DateTimeField(default=timezone.now)
    end_time = models.DateTimeField(null=True, blank=True)
    # seconds
    duration = models.PositiveIntegerField(default=0)
    billable = models.BooleanField(default=True)
    hourly_rate = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=0,
        validators=[MinValueValidator(0)]
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["user", "start_time"]),
            models.Index(fields=["user", "end_time"]),
            models.Index(fields=["project"]),
        ]
        ordering = ["-start_time", "-id"]

    def __str__(self) -> str:
        return f"{self.user_id} {self.start_time:%Y-%m-%d %H:%M}"

    def save(self, *args, **kwargs):
        if self.end_time is not None:
            self.duration = max((self.end_time - self.start_time) // timedelta(seconds=1), 0)
        else:
            self.duration = 0
        super().save(*args, **kwargs)

    @classmethod
    def running_for(cls, user):
        return cls.objects.filter(user=user, end_time__isnull=True).order_by("-start_time").first()

    @property
    def is_running(self):
        return self.end_time is None

    @property
    def current_duration(self):
        if self.end_time is None:
            return max((timezone.now() - self.start_time) // timedelta(seconds=1), 0)
        return self.duration

    @property
    def earnings(self):
        if not self.billable:
            return Decimal("0.00")
        return (Decimal(self.duration) / Decimal(3600) * self.hourly_rate).quantize(Decimal("0.01"))

    def stop(self, at=None):
        self.end_time = at or timezone.now()
        self.save()
        return self
