from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.http import HttpResponse
from django.urls import path, include


def healthz(_): return HttpResponse("ok", content_type="text/plain")


urlpatterns = [
    path("admin/", admin.site.urls),
    path("healthz/", healthz),
    path(
        "api/",
        include([
            path("", include("apps.users.api.urls")),
            path("", include("apps.projects.api.urls")),
            path("", include("apps.tasks.api.urls")),
            path("", include("apps.timetracking.api.urls")),
            path("", include("apps.notifications.api.urls")),
            path("", include("apps.chat.api.urls")),
            path("", include("apps.files.api.urls")),
            path("", include("apps.payments.api.urls")),
            path("admin/", include("apps.adminpanel.api.urls")),
        ])
    ),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
