from rest_framework.permissions import BasePermission

from .services import user_has_permission


class HasPermission(BasePermission):
    """Grants access when the user holds ``required_permission`` through a role"""
    required_permission = None
    message = 'You do not have permission to perform this action.'

    def has_permission(self, request, view):
        if self.required_permission is None:
            return False
        return user_has_permission(request.user, self.required_permission)


def require_permission(permission_name):
    """Build a HasPermission subclass for use in @permission_classes"""
    return type(
        f"Has_{permission_name.replace(':', '_')}",
        (HasPermission,),
        {
            'required_permission': permission_name,
            'message': f"Missing permission: {permission_name}",
        },
    )


def is_platform_admin(user):
    return bool(user and user.is_authenticated and
                (user.is_superuser or user.is_staff or user.user_type == 'admin'))


class IsPlatformAdmin(BasePermission):
    """Staff, superusers and users of type admin"""

    def has_permission(self, request, view):
        return is_platform_admin(request.user)
