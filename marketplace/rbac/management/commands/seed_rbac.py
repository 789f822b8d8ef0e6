from django.core.management.base import BaseCommand
from django.db import transaction

from marketplace.rbac.defaults import DEFAULT_PERMISSIONS, DEFAULT_ROLES, permission_name
from marketplace.rbac.models import Role, Permission, RolePermission


class Command(BaseCommand):
    help = 'Create the default permissions and roles: platform_admin, organization_owner, organization_staff'

    @transaction.atomic
    def handle(self, *args, **options):
        permissions = {}
        for resource, action, description in DEFAULT_PERMISSIONS:
            name = permission_name(resource, action)
            permission, created = Permission.objects.get_or_create(
                name=name,
                defaults={
                    'resource': resource,
                    'action': action,
                    'description': description,
                },
            )
            permissions[name] = permission
            if created:
                self.stdout.write(self.style.SUCCESS(f'✓ Created permission: {name}'))

        for role_name, config in DEFAULT_ROLES.items():
            role, created = Role.objects.get_or_create(
                name=role_name,
                defaults={'scope': config['scope'], 'description': config['description']},
            )
            if created:
                self.stdout.write(self.style.SUCCESS(f'✓ Created role: {role_name}'))
            else:
                self.stdout.write(f'  Role already exists: {role_name}')

            names = permissions.keys() if config['permissions'] == '*' else config['permissions']
            for name in names:
                RolePermission.objects.get_or_create(role=role, permission=permissions[name])

        self.stdout.write(self.style.SUCCESS(
            f'\nSeeded {len(permissions)} permissions and {len(DEFAULT_ROLES)} roles'
        ))
