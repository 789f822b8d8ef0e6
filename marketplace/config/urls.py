"""
URL configuration for the marketplace project.

Every app contributes its routes under the versioned API prefix.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Marketplace Admin Panel"
admin.site.site_title = "Marketplace Admin Portal"
admin.site.index_title = "Welcome to the Marketplace Admin"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('marketplace.core.urls')),
    path('api/v1/', include('marketplace.rbac.urls')),
    path('api/v1/', include('marketplace.organizations.urls')),
    path('api/v1/', include('marketplace.attributes.urls')),
    path('api/v1/', include('marketplace.catalog.urls')),
    path('api/v1/', include('marketplace.locations.urls')),
    path('api/v1/', include('marketplace.inventory.urls')),
    path('api/v1/', include('marketplace.vendors.urls')),
    path('api/v1/', include('marketplace.orders.urls')),
    path('api/v1/', include('marketplace.cart.urls')),
    path('api/v1/', include('marketplace.payments.urls')),
    path('api/v1/', include('marketplace.notifications.urls')),
    path('api/v1/', include('marketplace.cms.urls')),
]
