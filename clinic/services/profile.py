"""
Profile-completion workflow.

A new account (``is_new=True``) walks a linear wizard whose steps depend on
its role and then submits everything at once.  A successful submission
sets the user's own password, fills the specialist record when relevant
and flips ``is_new`` exactly once.
"""
from __future__ import annotations

from django.db import transaction

from clinic.exceptions import ApiError
from clinic.models import Specialist
from clinic.roles import Role, coerce_role
from clinic.services.audit import log_action
from clinic.services.identity import notify_identity_updated

SPECIALIST_STEPS = [
    {'id': 'welcome', 'label': 'Bienvenida'},
    {'id': 'commitment', 'label': 'Nuestro Compromiso'},
    {'id': 'personal', 'label': 'Datos Personales'},
    {'id': 'professional', 'label': 'Información Profesional'},
    {'id': 'training', 'label': 'Formación y Experiencia'},
    {'id': 'photo', 'label': 'Foto de Perfil'},
]

ADMIN_STEPS = [
    {'id': 'personal', 'label': 'Información Personal'},
    {'id': 'photo', 'label': 'Foto de Perfil'},
    {'id': 'confirmation', 'label': 'Confirmación'},
    {'id': 'tutorial', 'label': 'Tutorial'},
]

DEFAULT_STEPS = [
    {'id': 'welcome', 'label': 'Bienvenida'},
    {'id': 'commitment', 'label': 'Nuestro Compromiso'},
    {'id': 'personal', 'label': 'Datos Personales'},
    {'id': 'contact', 'label': 'Contacto'},
]

PENDING_SPECIALTY = 'Por definir'

_PROFESSIONAL_FIELDS = {
    'specialty': 'specialty',
    'licenseNumber': 'license_number',
    'assignedOffice': 'assigned_office',
    'biography': 'biography',
    'yearsOfExperience': 'years_of_experience',
    'consultationFee': 'consultation_fee',
    'photoUrl': 'photo_url',
    'courses': 'courses',
    'certifications': 'certifications',
    'academicFormation': 'academic_formation',
    'trajectory': 'trajectory',
}


def profile_steps(role) -> list[dict]:
    r = coerce_role(role)
    if r == Role.SPECIALIST:
        return SPECIALIST_STEPS
    if r == Role.ADMIN:
        return ADMIN_STEPS
    return DEFAULT_STEPS


def _full_name(user) -> str:
    return ' '.join(p for p in (user.suffix, user.first_name, user.last_name) if p).strip()


def _apply_specialist(user, data: dict) -> Specialist:
    specialist, _ = Specialist.objects.get_or_create(
        user=user,
        defaults={'full_name': _full_name(user), 'specialty': PENDING_SPECIALTY},
    )
    specialist.full_name = _full_name(user)
    for src, dst in _PROFESSIONAL_FIELDS.items():
        if src in data and data[src] not in (None, ''):
            value = data[src]
            if isinstance(value, list):
                value = [dict(item) for item in value]
            setattr(specialist, dst, value)
    specialist.is_available = True
    specialist.save()
    return specialist


@transaction.atomic
def complete_profile(user, data: dict, *, request=None):
    """Apply a validated :class:`CompleteProfileSerializer` payload to ``user``."""
    if not user.is_new:
        raise ApiError('profile_already_completed', 'El perfil ya fue completado', status_code=409)

    user.first_name = data['firstName']
    user.last_name = data['lastName']
    if data.get('suffix') is not None:
        user.suffix = data['suffix']
    if 'dateOfBirth' in data:
        user.date_of_birth = data['dateOfBirth']
    if data.get('phone'):
        user.phone = data['phone']
    if data.get('photoUrl'):
        user.photo_url = data['photoUrl']
    user.set_password(data['newPassword'])
    user.is_new = False
    user.save()

    if coerce_role(user.role) == Role.SPECIALIST:
        _apply_specialist(user, data)

    log_action(user=user, action='COMPLETE_PROFILE', module='AUTH', object_type='user', object_id=user.id,
               detail={'role': user.role}, request=request)
    transaction.on_commit(lambda: notify_identity_updated(user))
    return user
