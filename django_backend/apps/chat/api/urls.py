from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import ProjectMessagesView, ProjectUnreadMessagesView, MessageViewSet

router = DefaultRouter()
router.register(r"messages", MessageViewSet, basename="messages")

urlpatterns = [
    path("projects/<int:project_id>/messages/", ProjectMessagesView.as_view(), name="project-messages"),
    path(
        "projects/<int:project_id>/messages/unread/",
        ProjectUnreadMessagesView.as_view(),
        name="project-messages-unread",
    ),
    path("", include(router.urls)),
]
