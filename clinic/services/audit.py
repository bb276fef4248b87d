import logging
from typing import Any, Dict, Optional

from django.contrib.auth import get_user_model

from clinic.models import ActivityLog

User = get_user_model()
logger = logging.getLogger(__name__)


def client_ip(request) -> Optional[str]:
    if request is None:
        return None
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def log_action(*, user: Optional[User], action: str, module: str, object_type: Optional[str] = None,
               object_id=None, detail: Optional[Dict[str, Any]] = None, request=None) -> ActivityLog:
    actor = user if getattr(user, 'pk', None) else None
    entry = ActivityLog.objects.create(
        user=actor,
        user_email=getattr(actor, 'email', '') or '',
        action=action,
        module=module,
        object_type=object_type,
        object_id=str(object_id) if object_id is not None else None,
        detail=detail or {},
        ip=client_ip(request),
    )
    logger.info('%s.%s by %s on %s:%s', module, action, entry.user_email or 'anonymous', object_type, object_id)
    return entry
