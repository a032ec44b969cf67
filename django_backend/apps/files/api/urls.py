from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import ProjectFilesView, ProjectFileViewSet

router = DefaultRouter()
router.register(r"files", ProjectFileViewSet, basename="files")

urlpatterns = [
    path("projects/<int:project_id>/files/", ProjectFilesView.as_view(), name="project-files"),
    path("", include(router.urls)),
]
