"""
Client-side persistence and the identity-updated subject.

The session lives under two keys, ``token`` and ``user`` (the Identity as
JSON), mirroring what the browser keeps in ``localStorage``.  Writers
always persist first and notify second, so a listener that re-reads the
storage in response to the signal sees the new record.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional, Union

from django.dispatch import Signal

from .identity import Identity

logger = logging.getLogger(__name__)

TOKEN_KEY = 'token'
REFRESH_KEY = 'refresh'
USER_KEY = 'user'


class Storage:
    """String key/value store."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError


class MemoryStorage(Storage):
    def __init__(self, initial: Optional[dict] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key):
        return self._data.get(key)

    def set(self, key, value):
        self._data[key] = value

    def remove(self, key):
        self._data.pop(key, None)


class FileStorage(Storage):
    """A JSON object on disk, rewritten atomically on every change.

    An unreadable file is treated as empty and replaced on the next write.
    """

    def __init__(self, path: Union[str, os.PathLike]):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> dict:
        try:
            with open(self.path, encoding='utf-8') as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning('Ignoring unreadable session file %s: %s', self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning('Ignoring session file %s: not a JSON object', self.path)
            return {}
        return data

    def _dump(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as fh:
                json.dump(data, fh, ensure_ascii=False)
            os.replace(tmp, self.path)
        except BaseException:
            os.unlink(tmp)
            raise

    def get(self, key):
        with self._lock:
            value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set(self, key, value):
        with self._lock:
            data = self._load()
            data[key] = value
            self._dump(data)

    def remove(self, key):
        with self._lock:
            data = self._load()
            if key in data:
                del data[key]
                self._dump(data)


class SessionContext:
    """Storage plus the ``identity_updated`` signal that goes with it.

    Each context owns its signal, so two sessions in one process (or one
    test) never hear each other.
    """

    def __init__(self, storage: Optional[Storage] = None):
        self.storage = storage if storage is not None else MemoryStorage()
        self.identity_updated = Signal()

    def notify(self) -> None:
        """Tell subscribers to re-read the persisted identity."""
        self.identity_updated.send(sender=self.__class__, context=self)

    def persist(self, token: str, identity: Union[Identity, dict], refresh: Optional[str] = None) -> None:
        if isinstance(identity, dict):
            identity = Identity.from_dict(identity)
        self.storage.set(TOKEN_KEY, token)
        if refresh:
            self.storage.set(REFRESH_KEY, refresh)
        self.storage.set(USER_KEY, identity.to_json())
        self.notify()

    def replace_identity(self, identity: Union[Identity, dict]) -> None:
        if isinstance(identity, dict):
            identity = Identity.from_dict(identity)
        self.storage.set(USER_KEY, identity.to_json())
        self.notify()

    def set_token(self, token: str) -> None:
        self.storage.set(TOKEN_KEY, token)

    def clear(self) -> None:
        for key in (TOKEN_KEY, REFRESH_KEY, USER_KEY):
            self.storage.remove(key)
        self.notify()

    @property
    def token(self) -> Optional[str]:
        return self.storage.get(TOKEN_KEY)

    @property
    def refresh_token(self) -> Optional[str]:
        return self.storage.get(REFRESH_KEY)
