"""
Dashboard menu and landing routes.

The menu is the list of dashboard modules in display order, each gated
by at most one permission.  ``visible_modules`` is what the sidebar
shows, ``resolve_module`` is the module router: a module the role cannot
see falls back to the overview.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .roles import Permission as P, Role, coerce_role, has_permission


@dataclass(frozen=True)
class MenuItem:
    id: str
    label: str
    permission: Optional[str] = None

    def as_dict(self) -> dict:
        return {'id': self.id, 'label': self.label, 'permission': self.permission}


OVERVIEW = 'overview'

MENU: tuple[MenuItem, ...] = (
    MenuItem(OVERVIEW, 'Resumen'),
    MenuItem('users', 'Usuarios', P.MANAGE_USERS),
    MenuItem('specialists', 'Especialistas', P.MANAGE_SPECIALISTS),
    MenuItem('appointments', 'Citas', P.MANAGE_APPOINTMENTS),
    MenuItem('studies', 'Estudios', P.MANAGE_STUDIES),
    MenuItem('reports', 'Reportes', P.VIEW_REPORTS),
    MenuItem('analytics', 'Analíticas', P.VIEW_ANALYTICS),
    MenuItem('billing', 'Facturación', P.MANAGE_BILLING),
    MenuItem('admins', 'Administradores', P.MANAGE_ADMINS),
    MenuItem('database', 'Base de Datos', P.MANAGE_DATABASE),
    MenuItem('settings', 'Configuración', P.MANAGE_SETTINGS),
)


def visible_modules(role) -> list[MenuItem]:
    """Menu items the role may open.

    Unknown roles only get the permission-free overview entry.
    """
    return [item for item in MENU if item.permission is None or has_permission(role, item.permission)]


def resolve_module(role, module_id: Optional[str]) -> str:
    for item in visible_modules(role):
        if item.id == module_id:
            return item.id
    return OVERVIEW


PROFILE_COMPLETION_PATH = '/completar-perfil'
ADMIN_PROFILE_COMPLETION_PATH = '/completar-perfil/admin'

_DASHBOARD_BY_ROLE = {
    Role.SUPERADMIN: '/dashboard',
    Role.ADMIN: '/dashboard',
    Role.RECEPTIONIST: '/dashboard',
    Role.SPECIALIST: '/dashboard/especialista',
    Role.PATIENT: '/dashboard/paciente',
}


def landing_path(role, is_new) -> str:
    """Where a freshly logged-in identity should be sent.

    ``is_new`` may be a bool or the 0/1 integers some databases return.
    """
    r = coerce_role(role)
    if is_new in (True, 1):
        if r in (Role.ADMIN, Role.SPECIALIST):
            return ADMIN_PROFILE_COMPLETION_PATH
        return PROFILE_COMPLETION_PATH
    return _DASHBOARD_BY_ROLE.get(r, '/dashboard')
