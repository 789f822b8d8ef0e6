from django.contrib import admin
from .models import NotificationTemplate, Notification, NotificationPreference


@admin.register(NotificationTemplate)
class NotificationTemplateAdmin(admin.ModelAdmin):
    list_display = ['name', 'event', 'channel', 'is_active', 'updated_at']
    list_filter = ['channel', 'is_active']
    search_fields = ['name', 'event', 'subject']


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['user', 'event', 'channel', 'status', 'sent_at', 'read_at', 'created_at']
    list_filter = ['channel', 'status', 'created_at']
    search_fields = ['user__username', 'event', 'title']
    readonly_fields = ['created_at']


@admin.register(NotificationPreference)
class NotificationPreferenceAdmin(admin.ModelAdmin):
    list_display = ['user', 'event', 'channel', 'enabled']
    list_filter = ['channel', 'enabled']
    search_fields = ['user__username', 'event']
