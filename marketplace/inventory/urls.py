from django.urls import path
from .views import (
    variant_availability, variant_inventory, variant_total, variant_best_location,
    location_inventory, inventory_list, low_stock, movement_list,
    adjust_inventory, transfer_inventory, reserve_inventory, release_inventory, fulfill_inventory,
)

urlpatterns = [
    # Variant inventory
    path('inventory/variants/<int:variant_id>/', variant_inventory, name='variant-inventory'),
    path('inventory/variants/<int:variant_id>/availability/', variant_availability, name='variant-availability'),
    path('inventory/variants/<int:variant_id>/total/', variant_total, name='variant-total'),
    path('inventory/variants/<int:variant_id>/best-location/', variant_best_location, name='variant-best-location'),

    # Location inventory (location CRUD lives in marketplace.locations)
    path('inventory/locations/<int:pk>/inventory/', location_inventory, name='location-inventory'),

    # Admin
    path('inventory/all/', inventory_list, name='inventory-list'),
    path('inventory/low-stock/', low_stock, name='inventory-low-stock'),
    path('inventory/movements/', movement_list, name='inventory-movements'),
    path('inventory/adjust/', adjust_inventory, name='inventory-adjust'),
    path('inventory/transfer/', transfer_inventory, name='inventory-transfer'),
    path('inventory/reserve/', reserve_inventory, name='inventory-reserve'),
    path('inventory/release/', release_inventory, name='inventory-release'),
    path('inventory/fulfill/', fulfill_inventory, name='inventory-fulfill'),
]
