"""Custom DRF permissions backed by the role -> permission table."""
from rest_framework.permissions import BasePermission

from accounts.permissions import user_can


def _is_employed(user):
    """Pending, rejected and offboarded accounts can sign in but do nothing else."""
    if getattr(user, 'is_superuser', False):
        return True
    return getattr(user, 'employment_status', None) == 'active'


class IsActiveEmployee(BasePermission):
    """Authenticated user whose account has been approved."""

    message = 'Your account is awaiting approval.'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_active and _is_employed(user))


class HasPermissionKey(IsActiveEmployee):
    """Grant access when the user's role holds ``permission_key``.

    The key comes from the instance, or from ``required_permission`` on the
    view. Use ``HasPermissionKey.for_key('approveCommission')`` to build a
    class usable in ``permission_classes``.
    """

    permission_key = None

    def __init__(self, permission_key=None):
        if permission_key is not None:
            self.permission_key = permission_key

    @classmethod
    def for_key(cls, permission_key):
        return type(f'Has_{permission_key}', (cls,), {'permission_key': permission_key})

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False
        key = self.permission_key or getattr(view, 'required_permission', None)
        if key is None:
            return True
        self.message = f'Missing permission: {key}'
        return user_can(request.user, key)


class IsAdmin(IsActiveEmployee):
    """Allow access to users with the admin role."""

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False
        return request.user.is_superuser or request.user.role == 'admin'


class IsManagerOrAdmin(IsActiveEmployee):
    """Allow access to users with the admin or manager role."""

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False
        return request.user.is_superuser or request.user.role in ('admin', 'manager')
