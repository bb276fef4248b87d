"""
HTTP client for the Maria Vita API.

Every call that returns an Identity stores it in the :class:`SessionContext`
and then fires the context's ``identity_updated`` signal, so any bound
:class:`~clinic.client.session.SessionBinder` picks up the new role.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from .storage import SessionContext

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10


class PortalAPIError(Exception):
    def __init__(self, status: int, code: str, message: str, details: Any = None):
        super().__init__(f"{status} {code}: {message}")
        self.status = status
        self.code = code
        self.message = message
        self.details = details


class PortalClient:
    def __init__(self, base_url: str, context: SessionContext, http: Optional[requests.Session] = None,
                 timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip('/')
        self.context = context
        self.http = http if http is not None else requests.Session()
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    def _request(self, method: str, path: str, *, json: Any = None, params: Optional[dict] = None,
                 auth: bool = True) -> dict:
        headers = {'Accept': 'application/json'}
        token = self.context.token if auth else None
        if token:
            headers['Authorization'] = f'Bearer {token}'
        resp = self.http.request(method, f'{self.base_url}{path}', json=json, params=params,
                                 headers=headers, timeout=self.timeout)
        try:
            body = resp.json()
        except ValueError:
            logger.error('%s %s returned non-JSON (%s)', method, path, resp.status_code)
            raise PortalAPIError(resp.status_code, 'bad_response', resp.text[:200])
        if not isinstance(body, dict):
            raise PortalAPIError(resp.status_code, 'bad_response', 'Respuesta inesperada del servidor')

        if resp.status_code >= 400 or not body.get('ok', False):
            error = body.get('error') or {}
            raise PortalAPIError(
                resp.status_code,
                error.get('code', 'api_error'),
                error.get('message', resp.reason or ''),
                error.get('details'),
            )
        return body

    @staticmethod
    def _identity_from(data: dict) -> dict:
        return {k: v for k, v in data.items() if k not in ('redirect', 'roleLabel')}

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------
    def login(self, email: str, password: str) -> dict:
        """Log in and persist the session. Returns ``{user, token, refresh, redirect}``."""
        data = self._request('POST', '/api/auth/login', json={'email': email, 'password': password},
                             auth=False)['data']
        self.context.persist(data['token'], data['user'], refresh=data.get('refresh'))
        return data

    def register(self, *, email: str, password: str, first_name: str, last_name: str,
                 phone: str = '', role: Optional[str] = None) -> dict:
        payload = {'email': email, 'password': password, 'firstName': first_name, 'lastName': last_name,
                   'phone': phone}
        if role:
            payload['role'] = role
        data = self._request('POST', '/api/auth/register', json=payload, auth=False)['data']
        self.context.persist(data['token'], data['user'], refresh=data.get('refresh'))
        return data

    def refresh(self) -> str:
        """Exchange the stored refresh token for a new access token."""
        refresh = self.context.refresh_token
        if not refresh:
            raise PortalAPIError(401, 'unauthorized', 'No hay sesión que renovar')
        data = self._request('POST', '/api/auth/refresh', json={'refresh': refresh}, auth=False)['data']
        self.context.set_token(data['token'])
        return data['token']

    def logout(self) -> None:
        """Revoke the refresh token server-side and clear the local session.

        The local session is cleared even when the server call fails.
        """
        refresh = self.context.refresh_token
        try:
            if self.context.token:
                self._request('POST', '/api/auth/logout', json={'refresh': refresh} if refresh else {})
        finally:
            self.context.clear()

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------
    def me(self) -> dict:
        data = self._request('GET', '/api/auth/me')['data']
        self.context.replace_identity(self._identity_from(data))
        return data

    def update_me(self, **fields) -> dict:
        data = self._request('PUT', '/api/auth/me', json=fields)['data']
        self.context.replace_identity(self._identity_from(data))
        return data

    def profile_steps(self) -> list[dict]:
        return self._request('GET', '/api/auth/complete-profile')['data']['steps']

    def complete_profile(self, payload: dict) -> dict:
        data = self._request('POST', '/api/auth/complete-profile', json=payload)['data']
        self.context.replace_identity(self._identity_from(data))
        return data

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------
    def modules(self, module: Optional[str] = None) -> dict:
        params = {'module': module} if module else None
        return self._request('GET', '/api/dashboard/modules', params=params)['data']

    def get(self, path: str, **params) -> Any:
        """Authenticated GET of any API path, returning the envelope's ``data``."""
        return self._request('GET', path, params=params or None)['data']
