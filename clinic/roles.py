"""
Role and permission table for Maria Vita.

Every dashboard decision and every API check resolves to a lookup in
``ROLE_PERMISSIONS``.  The evaluator functions below are pure and total:
any value that is not one of the five roles (``None``, a stale string
from a cached identity, a number) is treated as a role without
permissions instead of raising.

``SUPERADMIN`` is a short-circuit, not an enumeration: it holds every
permission string, including ones that do not appear anywhere in this
module.  The other roles hold exactly what is listed for them; there is
no inheritance between ``ADMIN`` and the lesser roles.
"""
from __future__ import annotations

from typing import Iterable

from django.db import models


class Role(models.TextChoices):
    SUPERADMIN = 'SUPERADMIN', 'Super Administrador'
    ADMIN = 'ADMIN', 'Administrador'
    SPECIALIST = 'SPECIALIST', 'Especialista'
    RECEPTIONIST = 'RECEPTIONIST', 'Recepcionista'
    PATIENT = 'PATIENT', 'Paciente'


class Permission:
    """Known permission tokens. Any other string is a valid (ungranted) token."""
    FULL_SYSTEM_ACCESS = 'full_system_access'
    SYSTEM_CONFIGURATION = 'system_configuration'
    MANAGE_ADMINS = 'manage_admins'
    MANAGE_USERS = 'manage_users'
    MANAGE_SPECIALISTS = 'manage_specialists'
    MANAGE_APPOINTMENTS = 'manage_appointments'
    MANAGE_STUDIES = 'manage_studies'
    MANAGE_SETTINGS = 'manage_settings'
    MANAGE_DATABASE = 'manage_database'
    MANAGE_BILLING = 'manage_billing'
    VIEW_REPORTS = 'view_reports'
    VIEW_ANALYTICS = 'view_analytics'
    VIEW_APPOINTMENTS = 'view_appointments'
    MANAGE_OWN_APPOINTMENTS = 'manage_own_appointments'
    VIEW_PATIENTS = 'view_patients'
    MANAGE_AVAILABILITY = 'manage_availability'
    VIEW_STUDY_REQUESTS = 'view_study_requests'
    VIEW_OWN_APPOINTMENTS = 'view_own_appointments'
    BOOK_APPOINTMENTS = 'book_appointments'
    VIEW_OWN_STUDIES = 'view_own_studies'
    REQUEST_STUDIES = 'request_studies'
    VIEW_SPECIALISTS = 'view_specialists'
    MANAGE_STUDY_REQUESTS = 'manage_study_requests'


P = Permission

ROLE_PERMISSIONS: dict[Role, frozenset[str]] = {
    # Listed for display only; has_permission() short-circuits for this role.
    Role.SUPERADMIN: frozenset({
        P.FULL_SYSTEM_ACCESS,
        P.MANAGE_ADMINS,
        P.MANAGE_USERS,
        P.MANAGE_SPECIALISTS,
        P.MANAGE_APPOINTMENTS,
        P.MANAGE_STUDIES,
        P.VIEW_REPORTS,
        P.MANAGE_SETTINGS,
        P.MANAGE_DATABASE,
        P.VIEW_ANALYTICS,
        P.MANAGE_BILLING,
        P.SYSTEM_CONFIGURATION,
    }),
    Role.ADMIN: frozenset({
        P.MANAGE_USERS,
        P.MANAGE_SPECIALISTS,
        P.MANAGE_APPOINTMENTS,
        P.MANAGE_STUDIES,
        P.VIEW_REPORTS,
        P.MANAGE_SETTINGS,
    }),
    Role.SPECIALIST: frozenset({
        P.VIEW_APPOINTMENTS,
        P.MANAGE_OWN_APPOINTMENTS,
        P.VIEW_PATIENTS,
        P.MANAGE_AVAILABILITY,
        P.VIEW_STUDY_REQUESTS,
    }),
    Role.PATIENT: frozenset({
        P.VIEW_OWN_APPOINTMENTS,
        P.BOOK_APPOINTMENTS,
        P.VIEW_OWN_STUDIES,
        P.REQUEST_STUDIES,
    }),
    Role.RECEPTIONIST: frozenset({
        P.MANAGE_APPOINTMENTS,
        P.VIEW_SPECIALISTS,
        P.MANAGE_STUDY_REQUESTS,
        P.VIEW_PATIENTS,
    }),
}

ADMIN_ROLES = frozenset({Role.SUPERADMIN, Role.ADMIN})

ROLE_COLORS: dict[Role, str] = {
    Role.SUPERADMIN: 'error',
    Role.ADMIN: 'primary',
    Role.SPECIALIST: 'success',
    Role.PATIENT: 'info',
    Role.RECEPTIONIST: 'warning',
}

DEFAULT_ROLE_COLOR = 'info'


def coerce_role(value) -> Role | None:
    """Return the :class:`Role` for ``value`` or ``None`` if it is not one.

    Only the exact upper-case role names match; any other string (``"admin"``,
    ``" ADMIN"``) is an unknown role and is granted nothing.
    """
    if isinstance(value, Role):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Role(value)
    except ValueError:
        return None


def get_role_permissions(role) -> frozenset[str]:
    """The permissions enumerated for ``role``; empty for unknown roles."""
    r = coerce_role(role)
    if r is None:
        return frozenset()
    return ROLE_PERMISSIONS[r]


def has_permission(role, permission: str) -> bool:
    r = coerce_role(role)
    if r is None:
        return False
    if r == Role.SUPERADMIN:
        return True
    return permission in ROLE_PERMISSIONS[r]


def has_any_permission(role, permissions: Iterable[str]) -> bool:
    """True if at least one permission is granted. An empty list grants nothing."""
    return any(has_permission(role, p) for p in permissions)


def has_all_permissions(role, permissions: Iterable[str]) -> bool:
    """True if every permission is granted.

    An empty list is vacuously true for every role, unknown roles included.
    """
    return all(has_permission(role, p) for p in permissions)


def is_admin(role) -> bool:
    return coerce_role(role) in ADMIN_ROLES


def is_super_admin(role) -> bool:
    return coerce_role(role) == Role.SUPERADMIN


def get_role_label(role) -> str:
    r = coerce_role(role)
    if r is None:
        return '' if role is None else str(role)
    return str(r.label)


def get_role_color(role) -> str:
    r = coerce_role(role)
    if r is None:
        return DEFAULT_ROLE_COLOR
    return ROLE_COLORS[r]
