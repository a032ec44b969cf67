from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import AdminStatsView, AdminUserViewSet, AdminProjectViewSet, AdminLogViewSet

router = DefaultRouter()
router.register(r"users", AdminUserViewSet, basename="admin-users")
router.register(r"projects", AdminProjectViewSet, basename="admin-projects")
router.register(r"logs", AdminLogViewSet, basename="admin-logs")

urlpatterns = [
    path("stats/", AdminStatsView.as_view(), name="admin-stats"),
    path("", include(router.urls)),
]
