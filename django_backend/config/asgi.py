import os

from django.core.asgi import get_asgi_application
from channels.routing import ProtocolTypeRouter, URLRouter

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

django_asgi_app = get_asgi_application()

from apps.chat.websockets import routing as chat_routing
from apps.notifications.websockets import routing as notifications_routing
from apps.common.middleware import CookieJWTWebSocketMiddleware

application = ProtocolTypeRouter(
    {
        "http": django_asgi_app,
        "websocket": CookieJWTWebSocketMiddleware(
            URLRouter(
                chat_routing.websocket_urlpatterns
                + notifications_routing.websocket_urlpatterns
            )
        ),
    }
)
