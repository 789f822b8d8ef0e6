from django.urls import path
from .views import location_list_create, location_detail

urlpatterns = [
    path('inventory/locations/', location_list_create, name='location-list-create'),
    path('inventory/locations/<int:pk>/', location_detail, name='location-detail'),
]
