from django.contrib import admin
from .models import HomepageContent


@admin.register(HomepageContent)
class HomepageContentAdmin(admin.ModelAdmin):
    list_display = ['id', 'updated_at']
    readonly_fields = ['created_at', 'updated_at']
