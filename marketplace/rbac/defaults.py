"""Built-in permission catalogue and role layout"""

DEFAULT_PERMISSIONS = [
    ('inventory', 'view', 'View inventory levels and movements'),
    ('inventory', 'create', 'Create inventory locations'),
    ('inventory', 'update', 'Update inventory locations and reservations'),
    ('inventory', 'delete', 'Delete inventory locations'),
    ('inventory', 'adjust', 'Adjust stock quantities'),
    ('inventory', 'transfer', 'Transfer stock between locations'),
    ('attribute', 'create', 'Create attribute definitions'),
    ('attribute', 'read', 'Read attribute definitions'),
    ('organization', 'approve', 'Approve, reject and suspend organizations'),
    ('order', 'manage', 'Change order status for any order'),
    ('cms', 'update', 'Edit homepage content'),
]

DEFAULT_ROLES = {
    'platform_admin': {
        'scope': 'platform',
        'description': 'Full platform access',
        'permissions': '*',
    },
    'organization_owner': {
        'scope': 'organization',
        'description': 'Owner of a vendor organization',
        'permissions': [
            'inventory:view', 'inventory:create', 'inventory:update', 'inventory:delete',
            'inventory:adjust', 'inventory:transfer', 'attribute:read',
        ],
    },
    'organization_staff': {
        'scope': 'organization',
        'description': 'Staff member of a vendor organization',
        'permissions': ['inventory:view', 'inventory:adjust', 'attribute:read'],
    },
}


def permission_name(resource, action):
    return f"{resource}:{action}"
