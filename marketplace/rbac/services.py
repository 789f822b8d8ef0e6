"""Role and permission management"""
import logging

from django.db import transaction

from marketplace.core.exceptions import BadRequestError, ConflictError, NotFoundError
from .models import Role, Permission, RolePermission, UserRole

logger = logging.getLogger(__name__)


def create_role(name, description='', scope='platform'):
    if Role.objects.filter(name=name).exists():
        raise ConflictError(f"Role with name '{name}' already exists")
    role = Role.objects.create(name=name, description=description, scope=scope)
    logger.info(f"Role '{name}' created")
    return role


def get_role(role_id):
    try:
        return Role.objects.get(pk=role_id)
    except Role.DoesNotExist:
        raise NotFoundError(f"Role with ID {role_id} not found")


def get_role_by_name(name):
    try:
        return Role.objects.get(name=name)
    except Role.DoesNotExist:
        raise NotFoundError(f"Role '{name}' not found")


def create_permission(name, resource, action, scope='organization', description=''):
    if Permission.objects.filter(resource=resource, action=action, scope=scope).exists():
        raise ConflictError(
            f"Permission with resource '{resource}', action '{action}', and scope '{scope}' already exists"
        )
    if Permission.objects.filter(name=name).exists():
        raise ConflictError(f"Permission with name '{name}' already exists")
    return Permission.objects.create(
        name=name, resource=resource, action=action, scope=scope, description=description
    )


def delete_permission(permission_id):
    try:
        permission = Permission.objects.get(pk=permission_id)
    except Permission.DoesNotExist:
        raise NotFoundError(f"Permission with ID {permission_id} not found")

    if permission.role_permissions.exists():
        raise BadRequestError(
            'Cannot delete permission that is assigned to roles. Please remove from roles first.'
        )

    name = permission.name
    permission.delete()
    return {'message': f"Permission '{name}' deleted successfully"}


@transaction.atomic
def assign_permissions(role, permission_ids):
    """Attach permissions to a role; already-attached ones are left alone"""
    permission_ids = set(permission_ids)
    permissions = list(Permission.objects.filter(pk__in=permission_ids))
    missing = permission_ids - {p.pk for p in permissions}
    if missing:
        raise NotFoundError(f"Permissions not found: {', '.join(str(i) for i in sorted(missing))}")

    for permission in permissions:
        RolePermission.objects.get_or_create(role=role, permission=permission)
    return role


def remove_permission(role, permission_id):
    deleted, _ = RolePermission.objects.filter(role=role, permission_id=permission_id).delete()
    if not deleted:
        raise NotFoundError(f"Permission {permission_id} is not assigned to role '{role.name}'")


def assign_role(user, role):
    user_role, created = UserRole.objects.get_or_create(user=user, role=role)
    if created:
        logger.info(f"Role '{role.name}' assigned to user {user.pk}")
    return user_role


def revoke_role(user, role):
    deleted, _ = UserRole.objects.filter(user=user, role=role).delete()
    if not deleted:
        raise NotFoundError(f"User {user.pk} does not have role '{role.name}'")


def get_user_permissions(user):
    """Names of all permissions granted through the user's roles"""
    if not user or not user.is_authenticated:
        return set()
    if user.is_superuser:
        return set(Permission.objects.values_list('name', flat=True))
    return set(
        Permission.objects.filter(role_permissions__role__user_roles__user=user)
        .values_list('name', flat=True)
    )


def user_has_permission(user, permission_name):
    if not user or not user.is_authenticated:
        return False
    if user.is_superuser:
        return True
    return Permission.objects.filter(
        name=permission_name,
        role_permissions__role__user_roles__user=user,
    ).exists()
