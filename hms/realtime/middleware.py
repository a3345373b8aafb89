"""
Token authentication for WebSocket connections.

Dashboards log in through the REST API and only hold a DRF token, so the
socket handshake carries it either as ``?token=<key>`` or as an
``Authorization: Token <key>`` header.  A valid token replaces the session
user resolved by ``AuthMiddlewareStack``.
"""
from urllib.parse import parse_qs

from channels.auth import AuthMiddlewareStack
from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth.models import AnonymousUser
from rest_framework import exceptions

from hms.authentication import TokenAuthentication


def token_from_scope(scope) -> str:
    query = parse_qs(scope.get("query_string", b"").decode())
    if query.get("token"):
        return query["token"][0]
    for name, value in scope.get("headers", []):
        if name == b"authorization":
            keyword, _, key = value.decode().partition(" ")
            if keyword == TokenAuthentication.keyword and key.strip():
                return key.strip()
    return ""


@database_sync_to_async
def user_for_token(key: str):
    try:
        user, _ = TokenAuthentication().authenticate_credentials(key)
    except exceptions.AuthenticationFailed:
        return AnonymousUser()
    return user


class TokenAuthMiddleware(BaseMiddleware):
    async def __call__(self, scope, receive, send):
        key = token_from_scope(scope)
        if key:
            scope = dict(scope, user=await user_for_token(key))
        return await super().__call__(scope, receive, send)


def TokenAuthMiddlewareStack(inner):
    return AuthMiddlewareStack(TokenAuthMiddleware(inner))
