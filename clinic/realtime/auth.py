"""
JWT authentication for WebSocket connections.

Browsers cannot set an ``Authorization`` header on a WebSocket handshake,
so the access token travels in the query string (``?token=...``).  The
same checks as the HTTP API apply: signature, expiry, active user and an
unchanged role.  Anything else leaves ``scope["user"]`` anonymous.
"""
import logging
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth.models import AnonymousUser
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError

from clinic.authentication import RoleJWTAuthentication

logger = logging.getLogger(__name__)


@database_sync_to_async
def user_for_token(raw_token: str):
    auth = RoleJWTAuthentication()
    try:
        validated = auth.get_validated_token(raw_token.encode())
        return auth.get_user(validated)
    except (InvalidToken, TokenError, AuthenticationFailed) as e:
        logger.info('Rejected websocket token: %s', e)
        return AnonymousUser()


def _token_from_scope(scope) -> str | None:
    params = parse_qs((scope.get('query_string') or b'').decode())
    if params.get('token'):
        return params['token'][0]
    for name, value in scope.get('headers') or []:
        if name == b'authorization':
            parts = value.decode().split()
            if len(parts) == 2 and parts[0] == 'Bearer':
                return parts[1]
    return None


class JWTAuthMiddleware(BaseMiddleware):
    async def __call__(self, scope, receive, send):
        scope = dict(scope)
        token = _token_from_scope(scope)
        scope['user'] = await user_for_token(token) if token else AnonymousUser()
        return await super().__call__(scope, receive, send)
