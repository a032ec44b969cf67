import logging
from datetime import datetime, time, timedelta

from django.db.models import Sum, Count
from django.db.models.functions import TruncDate
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import permissions, viewsets, status
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from apps.common.responses import envelope
from apps.timetracking.models import TimeEntry
from .serializers import TimeEntrySerializer, StartTimerSerializer, StopTimerSerializer

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY_DAYS = 7


def _parse_date(value, name):
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError({name: "Use YYYY-MM-DD."})


class TimeEntryViewSet(viewsets.ModelViewSet):
    """A user's own time entries; timers are started and stopped through actions."""

    serializer_class = TimeEntrySerializer
    permission_classes = [permissions.IsAuthenticated]
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ["project", "task", "billable"]

    def get_queryset(self):
        return TimeEntry.objects.filter(user=self.request.user).select_related("project", "task")

    def _default_rate(self):
        return self.request.user.hourly_rate or 0

    def perform_create(self, serializer):
        if serializer.validated_data.get("end_time") is None and TimeEntry.running_for(self.request.user):
            raise ValidationError("A timer is already running. Stop it first.")
        serializer.save(
            user=self.request.user,
            hourly_rate=serializer.validated_data.get("hourly_rate", self._default_rate()),
        )

    def destroy(self, request, *args, **kwargs):
        self.get_object().delete()
        return envelope(message="Time entry deleted")

    @action(detail=False, methods=["post"])
    def start(self, request):
        if TimeEntry.running_for(request.user):
            raise ValidationError("A timer is already running. Stop it first.")

        ser = StartTimerSerializer(data=request.data, context={"request": request})
        ser.is_valid(raise_exception=True)
        entry = ser.save(
            user=request.user,
            start_time=timezone.now(),
            end_time=None,
            hourly_rate=ser.validated_data.get("hourly_rate", self._default_rate()),
        )
        logger.info(f"Timer {entry.id} started by {request.user.username}")
        return envelope(TimeEntrySerializer(entry).data, "Timer started", status.HTTP_201_CREATED)

    @action(detail=False, methods=["post"])
    def stop(self, request):
        ser = StopTimerSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        entry_id = ser.validated_data.get("entry_id")
        if entry_id is not None:
            entry = get_object_or_404(TimeEntry, pk=entry_id, user=request.user)
            if not entry.is_running:
                raise ValidationError("This timer is not running.")
        else:
            entry = TimeEntry.running_for(request.user)
            if entry is None:
                raise ValidationError("No timer is running.")

        entry.stop()
        logger.info(f"Timer {entry.id} stopped after {entry.duration}s")
        return envelope(TimeEntrySerializer(entry).data, "Timer stopped")

    @action(detail=False, methods=["get"])
    def running(self, request):
        entry = TimeEntry.running_for(request.user)
        return Response(TimeEntrySerializer(entry).data if entry else None)

    @action(detail=False, methods=["get"])
    def summary(self, request):
        today = timezone.localdate()
        end = _parse_date(request.query_params["end"], "end") if "end" in request.query_params else today
        if "start" in request.query_params:
            start = _parse_date(request.query_params["start"], "start")
        else:
            start = end - timedelta(days=DEFAULT_SUMMARY_DAYS - 1)
        if end < start:
            raise ValidationError({"end": "End date cannot be before start date."})

        tz = timezone.get_current_timezone()
        qs = self.get_queryset().filter(
            end_time__isnull=False,
            start_time__gte=timezone.make_aware(datetime.combine(start, time.min), tz),
            start_time__lt=timezone.make_aware(datetime.combine(end + timedelta(days=1), time.min), tz),
        )

        by_day = (
            qs.annotate(day=TruncDate("start_time"))
            .values("day")
            .annotate(seconds=Sum("duration"), entries=Count("id"))
            .order_by("day")
        )
        by_project = (
            qs.values("project", "project__title")
            .annotate(seconds=Sum("duration"), entries=Count("id"))
            .order_by("-seconds")
        )
        earnings = sum((e.earnings for e in qs), start=0)

        return Response({
            "start": start.isoformat(),
            "end": end.isoformat(),
            "total_seconds": sum(row["seconds"] for row in by_day),
            "total_earnings": f"{earnings:.2f}",
            "by_day": [
                {"date": row["day"].isoformat(), "seconds": row["seconds"], "entries": row["entries"]}
                for row in by_day
            ],
            "by_project": [
                {
                    "project": row["project"],
                    "title": row["project__title"],
                    "seconds": row["seconds"],
                    "entries": row["entries"],
                }
                for row in by_project
            ],
        })
