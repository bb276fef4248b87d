"""Python client for the Maria Vita API and its local session cache."""
from .api import PortalAPIError, PortalClient
from .identity import Identity, IdentityFormatError
from .session import SessionBinder, SessionState
from .storage import FileStorage, MemoryStorage, SessionContext, Storage

__all__ = [
    'FileStorage',
    'Identity',
    'IdentityFormatError',
    'MemoryStorage',
    'PortalAPIError',
    'PortalClient',
    'SessionBinder',
    'SessionContext',
    'SessionState',
    'Storage',
]
