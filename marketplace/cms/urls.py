from django.urls import path
from . import views

urlpatterns = [
    path('cms/homepage/', views.homepage, name='cms-homepage'),
    path('cms/homepage/<str:section>/', views.homepage_section, name='cms-homepage-section'),
]
