"""
Client-side session binder.

Holds the cached :class:`Identity` that parameterises permission queries.
It reads only from the context's storage (no network) and re-reads the
full persisted record whenever the context's ``identity_updated`` signal
fires, so a burst of notifications can only cause redundant reads.
"""
from __future__ import annotations

import enum
import logging
from typing import Callable, Iterable, Optional

from django.conf import settings

from clinic import roles

from .identity import Identity, IdentityFormatError
from .storage import REFRESH_KEY, TOKEN_KEY, USER_KEY, SessionContext

logger = logging.getLogger(__name__)

DEFAULT_LOGIN_PATH = '/login'


class SessionState(enum.Enum):
    UNLOADED = 'unloaded'
    UNAUTHENTICATED = 'unauthenticated'
    AUTHENTICATED = 'authenticated'


class SessionBinder:
    def __init__(self, context: SessionContext, navigate: Optional[Callable[[str], None]] = None,
                 login_path: Optional[str] = None):
        self.context = context
        self.navigate = navigate
        self.login_path = login_path
        self.state = SessionState.UNLOADED
        self.identity: Optional[Identity] = None
        self.token: Optional[str] = None
        self._subscribed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def load(self) -> SessionState:
        """Read the token and identity from storage and subscribe to updates."""
        if not self._subscribed:
            self.context.identity_updated.connect(self._on_identity_updated, weak=False)
            self._subscribed = True
        return self._read()

    def close(self) -> None:
        if self._subscribed:
            self.context.identity_updated.disconnect(self._on_identity_updated)
            self._subscribed = False

    def __enter__(self) -> "SessionBinder":
        self.load()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _on_identity_updated(self, sender, **kwargs) -> None:
        self._read()

    def _read(self) -> SessionState:
        storage = self.context.storage
        token = storage.get(TOKEN_KEY)
        raw = storage.get(USER_KEY)
        if not token or not raw:
            return self._become_unauthenticated()
        try:
            identity = Identity.from_json(raw)
        except IdentityFormatError as e:
            logger.warning('Discarding corrupt stored identity: %s', e)
            storage.remove(TOKEN_KEY)
            storage.remove(REFRESH_KEY)
            storage.remove(USER_KEY)
            return self._become_unauthenticated()
        self.token = token
        self.identity = identity
        self.state = SessionState.AUTHENTICATED
        return self.state

    def _become_unauthenticated(self) -> SessionState:
        self.token = None
        self.identity = None
        self.state = SessionState.UNAUTHENTICATED
        return self.state

    def logout(self) -> None:
        """Forget the session and send the user to the login page."""
        self.context.clear()
        self._become_unauthenticated()
        if self.navigate is not None:
            self.navigate(self._login_path())

    def _login_path(self) -> str:
        if self.login_path:
            return self.login_path
        if settings.configured:
            return getattr(settings, 'LOGIN_PATH', DEFAULT_LOGIN_PATH)
        return DEFAULT_LOGIN_PATH

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def is_authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED

    @property
    def role(self) -> Optional[str]:
        return self.identity.role if self.is_authenticated else None

    def has_permission(self, permission: str) -> bool:
        return self.is_authenticated and roles.has_permission(self.role, permission)

    def has_any_permission(self, permissions: Iterable[str]) -> bool:
        return self.is_authenticated and roles.has_any_permission(self.role, permissions)

    def has_all_permissions(self, permissions: Iterable[str]) -> bool:
        return self.is_authenticated and roles.has_all_permissions(self.role, permissions)

    def is_admin(self) -> bool:
        return self.is_authenticated and roles.is_admin(self.role)

    def is_super_admin(self) -> bool:
        return self.is_authenticated and roles.is_super_admin(self.role)
