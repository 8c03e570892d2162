"""
Main URL Configuration for the Marketplace Approvals admin
"""
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),

    # Approvals API
    path('approvals/', include('approvals.urls')),
]

# Custom admin site headers
admin.site.site_header = 'Marketplace Admin'
admin.site.site_title = 'Marketplace Admin Portal'
admin.site.index_title = 'Vendor & Restaurant Approvals'
