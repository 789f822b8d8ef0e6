from django.urls import path
from .views import (
    organization_list_create, organization_detail, organization_members,
    organization_approve, organization_reject, organization_suspend, organization_reactivate,
    organization_pending, organization_approval_stats, organization_type_list_create,
)

urlpatterns = [
    path('organizations/', organization_list_create, name='organization-list-create'),
    path('organizations/pending/', organization_pending, name='organization-pending'),
    path('organizations/approval-stats/', organization_approval_stats, name='organization-approval-stats'),
    path('organizations/<int:pk>/', organization_detail, name='organization-detail'),
    path('organizations/<int:pk>/members/', organization_members, name='organization-members'),
    path('organizations/<int:pk>/approve/', organization_approve, name='organization-approve'),
    path('organizations/<int:pk>/reject/', organization_reject, name='organization-reject'),
    path('organizations/<int:pk>/suspend/', organization_suspend, name='organization-suspend'),
    path('organizations/<int:pk>/reactivate/', organization_reactivate, name='organization-reactivate'),
    path('organization-types/', organization_type_list_create, name='organization-type-list-create'),
]
