from django.contrib import admin
from .models import AttributeDefinition, AttributeOption, AttributeApplicableType, OrganizationAttribute


class AttributeOptionInline(admin.TabularInline):
    model = AttributeOption
    extra = 1


class AttributeApplicableTypeInline(admin.TabularInline):
    model = AttributeApplicableType
    extra = 1


@admin.register(AttributeDefinition)
class AttributeDefinitionAdmin(admin.ModelAdmin):
    list_display = ['key', 'label', 'data_type', 'is_required', 'group', 'display_order', 'is_active']
    list_filter = ['data_type', 'is_required', 'is_active', 'group']
    search_fields = ['key', 'label']
    ordering = ['display_order', 'key']
    inlines = [AttributeOptionInline, AttributeApplicableTypeInline]


@admin.register(OrganizationAttribute)
class OrganizationAttributeAdmin(admin.ModelAdmin):
    list_display = ['organization', 'key', 'value_type', 'value', 'updated_at']
    list_filter = ['value_type', 'key']
    search_fields = ['organization__name', 'key', 'value_string']
