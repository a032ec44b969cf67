from django.urls import path, include
from django.views.decorators.csrf import csrf_exempt
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView
from .views import RegisterAPIView, UserViewSet, LoginView, ProjectReviewsView

router = DefaultRouter()
router.register(r"users", UserViewSet, basename="users")

urlpatterns = [
    path("", include(router.urls)),
    path("auth/register/", csrf_exempt(RegisterAPIView.as_view()), name="auth-register"),
    path("auth/login/", csrf_exempt(LoginView.as_view()), name="auth-login"),
    path("auth/refresh/", csrf_exempt(TokenRefreshView.as_view()), name="auth-refresh"),
    path("projects/<int:project_id>/reviews/", ProjectReviewsView.as_view(), name="project-reviews"),
]
