from django.contrib import admin
from .models import Organization, OrganizationType, OrganizationUser, OrganizationSettings


@admin.register(OrganizationType)
class OrganizationTypeAdmin(admin.ModelAdmin):
    list_display = ['code', 'display_name', 'default_fee_type', 'default_fee_amount', 'requires_approval', 'is_active']
    list_filter = ['is_active', 'requires_approval']
    search_fields = ['code', 'display_name']


class OrganizationUserInline(admin.TabularInline):
    model = OrganizationUser
    fk_name = 'organization'
    extra = 0


class OrganizationSettingsInline(admin.StackedInline):
    model = OrganizationSettings
    extra = 0


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'organization_type', 'status', 'email', 'is_active', 'created_at']
    list_filter = ['status', 'organization_type', 'is_active', 'created_at']
    search_fields = ['name', 'slug', 'email']
    ordering = ['-created_at']
    readonly_fields = ['approved_at', 'approved_by', 'rejected_at', 'created_at', 'updated_at']
    inlines = [OrganizationSettingsInline, OrganizationUserInline]
