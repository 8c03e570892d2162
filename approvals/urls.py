"""
Approvals URLs
"""
from django.urls import path
from . import views

app_name = 'approvals'

urlpatterns = [
    # Dashboards
    path('verification/', views.verification_dashboard, name='verification'),
    path('moderation/', views.moderation_queue, name='moderation'),

    # Selection & bulk actions (scope: verification | moderation)
    path('<str:scope>/selection/', views.update_selection, name='selection'),
    path('<str:scope>/bulk/', views.bulk_action, name='bulk_action'),

    # Single vendor/restaurant actions
    path('<str:entity_type>/<str:entity_id>/verification/', views.toggle_verification, name='toggle_verification'),
    path('<str:entity_type>/<str:entity_id>/deactivate/', views.deactivate, name='deactivate'),
    path('<str:entity_type>/<str:entity_id>/safe-delete/', views.safe_delete, name='safe_delete'),
]
