"""
Custom permission classes for role based access control.

These are the server-side re-check of the table in :mod:`clinic.roles`:
the client hides what a role cannot use, but every request is evaluated
again here against the role stored in the database.
"""
from rest_framework.permissions import SAFE_METHODS, BasePermission

from .roles import has_any_permission, is_admin, is_super_admin


def _authenticated(request):
    user = getattr(request, "user", None)
    if user and user.is_authenticated and user.is_active:
        return user
    return None


class IsAdminRole(BasePermission):
    """Allow access only to SUPERADMIN and ADMIN."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = _authenticated(request)
        return bool(user and is_admin(user.role))


class IsSuperAdmin(BasePermission):
    """Only super admin."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = _authenticated(request)
        return bool(user and is_super_admin(user.role))


class HasPermission(BasePermission):
    """Grant access when the user's role holds any of ``permissions``.

    Use :func:`require_permission` to build a concrete class.
    """
    permissions: tuple[str, ...] = ()

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = _authenticated(request)
        return bool(user and has_any_permission(user.role, self.permissions))


def require_permission(*permissions: str) -> type[HasPermission]:
    name = "Has_" + "_or_".join(permissions)
    return type(name, (HasPermission,), {"permissions": tuple(permissions)})


class ReadOnlyOrHasPermission(HasPermission):
    """Anyone may read; writes need one of ``permissions``."""

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        if request.method in SAFE_METHODS:
            return True
        return super().has_permission(request, view)


def read_or_permission(*permissions: str) -> type[ReadOnlyOrHasPermission]:
    name = "ReadOr_" + "_or_".join(permissions)
    return type(name, (ReadOnlyOrHasPermission,), {"permissions": tuple(permissions)})


class IsOwnerOrHasPermission(BasePermission):
    """Object owner (``obj.patient_id``) or a role holding ``permissions``."""
    permissions: tuple[str, ...] = ()

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _authenticated(request) is not None

    def has_object_permission(self, request, view, obj) -> bool:  # type: ignore[override]
        user = _authenticated(request)
        if not user:
            return False
        if getattr(obj, "patient_id", None) == user.id:
            return True
        return has_any_permission(user.role, self.permissions)


def owner_or_permission(*permissions: str) -> type[IsOwnerOrHasPermission]:
    name = "OwnerOr_" + "_or_".join(permissions)
    return type(name, (IsOwnerOrHasPermission,), {"permissions": tuple(permissions)})
