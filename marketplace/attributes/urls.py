from django.urls import path
from .views import (
    definition_create, definition_list_by_type, form_schema,
    organization_attributes, organization_attribute_delete,
)

urlpatterns = [
    path('attributes/definitions/', definition_create, name='attribute-definition-create'),
    path('attributes/definitions/<str:organization_type>/', definition_list_by_type, name='attribute-definition-list'),
    path('attributes/schema/<str:organization_type>/', form_schema, name='attribute-form-schema'),
    path('organizations/<int:organization_id>/attributes/', organization_attributes, name='organization-attributes'),
    path('organizations/<int:organization_id>/attributes/<str:key>/', organization_attribute_delete, name='organization-attribute-delete'),
]
