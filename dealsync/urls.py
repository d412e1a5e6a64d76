from django.urls import path

from . import views

urlpatterns = [
    path('api/sync/<str:target_name>/', views.sync_trigger, name='sync-trigger'),
    path('api/sync/<str:target_name>/health/', views.sync_health_view, name='sync-health'),
    path('api/deals/', views.deals_view, name='deals-cache'),
]
