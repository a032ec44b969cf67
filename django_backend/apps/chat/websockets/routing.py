from django.urls import path
from .consumers import ProjectChatConsumer

websocket_urlpatterns = [
    path("ws/chat/", ProjectChatConsumer.as_asgi())
]
