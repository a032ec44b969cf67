from django.conf import settings
from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from rest_framework import generics, mixins, permissions, viewsets, status
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.response import Response
from rest_framework_simplejwt.views import TokenObtainPairView

from apps.common.responses import envelope
from apps.projects.models import Project, ProjectStatus
from apps.users.models import Review
from .permissions import IsSelfOrAdmin
from .serializers import (
    UserSerializer, UserUpdateSerializer, RegisterSerializer, ReviewSerializer
)

User = get_user_model()


class RegisterAPIView(generics.CreateAPIView):
    permission_classes = [permissions.AllowAny]
    serializer_class = RegisterSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        return envelope(UserSerializer(user).data, "Registration successful", status.HTTP_201_CREATED)


class LoginView(TokenObtainPairView):
    """Token login that also drops the tokens into cookies for the socket clients."""

    permission_classes = [permissions.AllowAny]

    def post(self, request, *args, **kwargs):
        response = super().post(request, *args, **kwargs)
        if response.status_code != 200:
            return response

        access_token = response.data["access"]
        refresh_token = response.data["refresh"]
        new_response = envelope(
            {"access": access_token, "refresh": refresh_token},
            "Login successful",
        )
        new_response.set_cookie(
            getattr(settings, "AUTH_COOKIE_ACCESS", "access_token"),
            access_token,
            max_age=60 * 60 * 24,
            httponly=getattr(settings, "AUTH_COOKIE_HTTPONLY", False),
            secure=getattr(settings, "AUTH_COOKIE_SECURE", False),
            samesite=getattr(settings, "AUTH_COOKIE_SAMESITE", "Lax"),
        )
        new_response.set_cookie(
            getattr(settings, "AUTH_COOKIE_REFRESH", "refresh_token"),
            refresh_token,
            max_age=60 * 60 * 24 * 7,
            httponly=True,
            secure=getattr(settings, "AUTH_COOKIE_SECURE", False),
            samesite=getattr(settings, "AUTH_COOKIE_SAMESITE", "Lax"),
        )
        return new_response


class UserViewSet(mixins.UpdateModelMixin, viewsets.ReadOnlyModelViewSet):
    queryset = User.objects.filter(is_active=True).order_by("id")
    permission_classes = [permissions.IsAuthenticated]

    def get_serializer_class(self):
        if self.action in ["update", "partial_update"]:
            return UserUpdateSerializer
        return UserSerializer

    def get_permissions(self):
        if self.action in ["update", "partial_update"]:
            return [permissions.IsAuthenticated(), IsSelfOrAdmin()]
        return super().get_permissions()

    @action(detail=False, methods=["get"])
    def me(self, request):
        return Response(UserSerializer(request.user).data)

    @action(detail=True, methods=["get"])
    def rating(self, request, pk=None):
        user = self.get_object()
        return Response(Review.user_average_rating(user))

    @action(detail=True, methods=["get"])
    def reviews(self, request, pk=None):
        user = self.get_object()
        qs = Review.objects.filter(reviewee=user, is_public=True).select_related("reviewer")
        return Response(ReviewSerializer(qs, many=True).data)


class ProjectReviewsView(generics.GenericAPIView):
    """Reviews exchanged between members of a completed project."""

    serializer_class = ReviewSerializer

    def get_project(self):
        project = get_object_or_404(Project, pk=self.kwargs["project_id"])
        if not project.is_member(self.request.user):
            raise PermissionDenied("Not a project member")
        return project

    def get(self, request, project_id):
        project = self.get_project()
        qs = project.reviews.select_related("reviewer")
        return Response(self.get_serializer(qs, many=True).data)

    def post(self, request, project_id):
        project = self.get_project()
        if project.status != ProjectStatus.COMPLETED:
            raise ValidationError("Reviews can only be left on completed projects.")

        serializer = self.get_serializer(
            data=request.data,
            context={"request": request, "project": project}
        )
        serializer.is_valid(raise_exception=True)
        review = serializer.save(project=project, reviewer=request.user)
        return envelope(ReviewSerializer(review).data, "Review submitted", status.HTTP_201_CREATED)
