from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import ProjectViewSet, ProjectMilestonesView, ProjectMilestonesReorderView, MilestoneViewSet

router = DefaultRouter()
router.register(r"projects", ProjectViewSet, basename="projects")
router.register(r"milestones", MilestoneViewSet, basename="milestones")

urlpatterns = [
    path("projects/<int:project_id>/milestones/", ProjectMilestonesView.as_view(), name="project-milestones"),
    path(
        "projects/<int:project_id>/milestones/reorder/",
        ProjectMilestonesReorderView.as_view(),
        name="project-milestones-reorder",
    ),
    path("", include(router.urls)),
]
