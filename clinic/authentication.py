"""
JWT authentication with role re-validation.

Access tokens issued at login carry the user's ``role`` claim.  On every
request the token signature and expiry are verified by simplejwt, the
user is loaded (inactive users are rejected there) and the role claim is
compared with the role currently stored in the database.  A token minted
before an administrative role change is refused, so a stale client can
never act with a role it no longer has.
"""
from __future__ import annotations

from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.tokens import RefreshToken

ROLE_CLAIM = 'role'


def issue_tokens(user) -> RefreshToken:
    """Return a refresh token (and, through it, an access token) for ``user``."""
    refresh = RefreshToken.for_user(user)
    refresh[ROLE_CLAIM] = user.role
    refresh['email'] = user.email
    return refresh


class RoleJWTAuthentication(JWTAuthentication):
    """Bearer JWT authentication that also checks the role claim."""

    def get_user(self, validated_token):
        user = super().get_user(validated_token)
        claimed = validated_token.get(ROLE_CLAIM)
        if claimed is not None and claimed != user.role:
            raise AuthenticationFailed('El rol del usuario cambió; inicie sesión de nuevo', code='role_changed')
        return user
