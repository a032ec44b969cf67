import logging

from django.conf import settings
from django.contrib.auth.models import AnonymousUser
from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError

from .auth import CookieJWTAuthentication

logger = logging.getLogger(__name__)


def parse_cookies(header):
    cookies = {}
    for chunk in header.split(";"):
        name, sep, value = chunk.partition("=")
        if sep:
            cookies[name.strip()] = value.strip()
    return cookies


def token_from_scope(scope):
    """
    Access token for a socket handshake: the auth cookie first, then a
    ``Bearer`` Authorization header. Query strings are never read.
    """
    headers = dict(scope.get("headers", []))

    cookie_name = getattr(settings, "AUTH_COOKIE_ACCESS", "access_token")
    token = parse_cookies(headers.get(b"cookie", b"").decode("latin1")).get(cookie_name)
    if token:
        return token

    kind, _, credentials = headers.get(b"authorization", b"").decode("latin1").partition(" ")
    if kind == "Bearer" and credentials:
        return credentials
    return None


class CookieJWTWebSocketMiddleware(BaseMiddleware):
    """Puts the JWT-authenticated user (or AnonymousUser) on ``scope["user"]``."""

    def __init__(self, inner):
        super().__init__(inner)
        self.auth = CookieJWTAuthentication()

    async def __call__(self, scope, receive, send):
        token = token_from_scope(scope)
        if token is None:
            logger.debug(f"Anonymous socket connection to {scope.get('path')}")
            scope["user"] = AnonymousUser()
        else:
            scope["user"] = await self.resolve_user(token)
        return await super().__call__(scope, receive, send)

    @database_sync_to_async
    def resolve_user(self, token):
        try:
            return self.auth.get_user(self.auth.get_validated_token(token))
        except (InvalidToken, TokenError, AuthenticationFailed) as e:
            logger.warning(f"Rejected socket token: {e}")
            return AnonymousUser()
