from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import ProjectPaymentsView, PaymentViewSet

router = DefaultRouter()
router.register(r"payments", PaymentViewSet, basename="payments")

urlpatterns = [
    path("projects/<int:project_id>/payments/", ProjectPaymentsView.as_view(), name="project-payments"),
    path("", include(router.urls)),
]
