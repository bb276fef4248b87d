import secrets

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from rest_framework.exceptions import PermissionDenied

from clinic.exceptions import ApiError
from clinic.models import Specialist
from clinic.roles import ADMIN_ROLES, Permission as P, Role, coerce_role, has_permission
from clinic.services.audit import log_action
from clinic.services.identity import identity_payload, notify_identity_updated
from clinic.services.profile import PENDING_SPECIALTY

User = get_user_model()


def user_payload(user) -> dict:
    """Identity plus the administrative fields shown in the users table."""
    data = identity_payload(user)
    data.update({
        'suffix': user.suffix,
        'dateOfBirth': user.date_of_birth.isoformat() if user.date_of_birth else None,
        'photoUrl': user.photo_url or None,
        'createdAt': user.created_at.isoformat() if user.created_at else None,
    })
    return data


def generate_temp_password() -> str:
    # token_urlsafe may yield no digit; the initial policy asks for one
    return secrets.token_urlsafe(settings.TEMP_PASSWORD_BYTES) + str(secrets.randbelow(10))


def _ensure_may_assign(actor, role) -> None:
    if coerce_role(role) in ADMIN_ROLES and not has_permission(actor.role, P.MANAGE_ADMINS):
        raise PermissionDenied('Solo un super administrador puede gestionar administradores')


def _full_name(first, last) -> str:
    return f"{first} {last}".strip()


@transaction.atomic
def create_user(actor, *, email, first_name, last_name, role, phone='', suffix='', temp_password=None,
                request=None):
    """Create an account on behalf of ``actor``.

    Returns ``(user, password)``; ``password`` is the temporary password to
    hand over, generated when none was supplied.
    """
    _ensure_may_assign(actor, role)
    if User.objects.filter(email__iexact=email).exists():
        raise ApiError('email_exists', status_code=409)

    password = temp_password or generate_temp_password()
    user = User.objects.create_user(
        email=email, password=password, first_name=first_name, last_name=last_name,
        role=role, phone=phone or '', suffix=suffix or '', is_new=True,
        can_admin=coerce_role(role) in ADMIN_ROLES,
    )
    if coerce_role(role) == Role.SPECIALIST:
        Specialist.objects.create(user=user, full_name=_full_name(first_name, last_name),
                                  specialty=PENDING_SPECIALTY, is_available=False)

    log_action(user=actor, action='CREATE', module='USERS', object_type='user', object_id=user.id,
               detail={'email': email, 'role': role}, request=request)
    return user, password


_UPDATE_FIELDS = {
    'firstName': 'first_name',
    'lastName': 'last_name',
    'phone': 'phone',
    'suffix': 'suffix',
    'dateOfBirth': 'date_of_birth',
    'isActive': 'is_active',
}


@transaction.atomic
def update_user(actor, user, data: dict, *, request=None):
    if user.pk == actor.pk and data.get('isActive') is False:
        raise ApiError('cannot_deactivate_self', 'No puede desactivar su propia cuenta')
    changed = {}
    new_role = data.get('role')
    if new_role is not None and new_role != user.role:
        # Moving into or out of an admin role is an admin-management action
        _ensure_may_assign(actor, new_role)
        _ensure_may_assign(actor, user.role)
        changed['role'] = {'from': user.role, 'to': new_role}
        user.role = new_role
        user.can_admin = coerce_role(new_role) in ADMIN_ROLES
        if coerce_role(new_role) == Role.SPECIALIST:
            Specialist.objects.get_or_create(
                user=user,
                defaults={'full_name': _full_name(user.first_name, user.last_name),
                          'specialty': PENDING_SPECIALTY, 'is_available': False},
            )

    for src, dst in _UPDATE_FIELDS.items():
        if src in data:
            value = data[src]
            if dst in ('phone', 'suffix') and value is None:
                value = ''
            if getattr(user, dst) != value:
                changed[src] = True
            setattr(user, dst, value)

    user.save()
    log_action(user=actor, action='UPDATE', module='USERS', object_type='user', object_id=user.id,
               detail={'changed': sorted(changed)}, request=request)
    transaction.on_commit(lambda: notify_identity_updated(user))
    return user


@transaction.atomic
def delete_user(actor, user, *, request=None) -> None:
    if user.pk == actor.pk:
        raise ApiError('cannot_delete_self')
    user_id, email = user.id, user.email
    user.delete()
    log_action(user=actor, action='DELETE', module='USERS', object_type='user', object_id=user_id,
               detail={'email': email}, request=request)
