from django.urls import path
from .views import (
    role_list_create, permission_list_create, permission_detail,
    role_permissions, user_roles,
)

urlpatterns = [
    path('rbac/roles/', role_list_create, name='rbac-role-list-create'),
    path('rbac/roles/<int:pk>/permissions/', role_permissions, name='rbac-role-permissions'),
    path('rbac/permissions/', permission_list_create, name='rbac-permission-list-create'),
    path('rbac/permissions/<int:pk>/', permission_detail, name='rbac-permission-detail'),
    path('rbac/users/<int:user_id>/roles/', user_roles, name='rbac-user-roles'),
]
