from board_client.api_client import ApiError, CollabHubClient
from board_client.board import BoardPermissionError, KanbanBoard, MoveTaskCommand
from board_client.chat import ChatSession, TypingTracker
from board_client.notifications import NotificationFeed

__all__ = (
    "ApiError",
    "CollabHubClient",
    "BoardPermissionError",
    "KanbanBoard",
    "MoveTaskCommand",
    "ChatSession",
    "TypingTracker",
    "NotificationFeed",
)
