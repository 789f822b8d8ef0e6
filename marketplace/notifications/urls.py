from django.urls import path
from . import views

urlpatterns = [
    path('notifications/', views.notification_list, name='notification-list'),
    path('notifications/<int:pk>/read/', views.notification_mark_read, name='notification-mark-read'),
    path('notifications/read-all/', views.notification_mark_all_read, name='notification-mark-all-read'),
    path('notifications/unread-count/', views.notification_unread_count, name='notification-unread-count'),
    path('notifications/preferences/', views.notification_preferences, name='notification-preferences'),
    path('notifications/templates/', views.template_list_create, name='notification-template-list'),
    path('notifications/templates/<int:pk>/', views.template_detail, name='notification-template-detail'),
]
