"""
Identity serialisation and the server side of the "identity updated" signal.

The record returned by login, ``/api/auth/me``, profile completion and user
administration is always the full Identity, so clients can replace their
cached copy wholesale.  After any mutation of a user the payload-less
``identity.updated`` event is pushed to that user's channel group; the
browser (or :mod:`clinic.client`) reacts by re-reading the Identity.
"""
from __future__ import annotations

import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)

IDENTITY_EVENT = 'identity.updated'


def identity_group(user_id) -> str:
    return f"identity.{user_id}"


def identity_payload(user) -> dict:
    return {
        'id': user.id,
        'email': user.email,
        'firstName': user.first_name,
        'lastName': user.last_name,
        'role': user.role,
        'phone': user.phone or None,
        'isActive': user.is_active,
        'isNew': user.is_new,
        'isAdmin': user.can_admin,
    }


def notify_identity_updated(user) -> bool:
    """Broadcast ``identity.updated`` to ``user``'s sockets.

    Must be called after the user row has been saved. Returns ``False`` if
    no channel layer is configured or the send failed; the failure is
    logged and never propagated to the request.
    """
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return False
    try:
        async_to_sync(channel_layer.group_send)(identity_group(user.id), {'type': IDENTITY_EVENT})
    except Exception:
        logger.exception('Could not broadcast %s for user %s', IDENTITY_EVENT, user.id)
        return False
    return True
