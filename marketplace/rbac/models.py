from django.conf import settings
from django.db import models


SCOPE_CHOICES = [
    ('platform', 'Platform'),
    ('organization', 'Organization'),
]


class Role(models.Model):
    """Named bundle of permissions"""
    name = models.CharField(max_length=50, unique=True)
    description = models.TextField(blank=True)
    scope = models.CharField(max_length=20, choices=SCOPE_CHOICES, default='platform')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'roles'
        ordering = ['name']


class Permission(models.Model):
    """A single "resource:action" grant"""
    name = models.CharField(max_length=50, unique=True)  # e.g. inventory:adjust
    description = models.TextField(blank=True)
    resource = models.CharField(max_length=50)
    action = models.CharField(max_length=50)
    scope = models.CharField(max_length=20, choices=SCOPE_CHOICES, default='organization')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'permissions'
        ordering = ['resource', 'action']
        unique_together = [['resource', 'action', 'scope']]


class RolePermission(models.Model):
    role = models.ForeignKey(Role, on_delete=models.CASCADE, related_name='role_permissions')
    permission = models.ForeignKey(Permission, on_delete=models.CASCADE, related_name='role_permissions')

    class Meta:
        db_table = 'role_permissions'
        unique_together = [['role', 'permission']]


class UserRole(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='user_roles')
    role = models.ForeignKey(Role, on_delete=models.CASCADE, related_name='user_roles')
    assigned_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'user_roles'
        unique_together = [['user', 'role']]
