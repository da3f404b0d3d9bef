"""
URL configuration for the formrelay project.

The relay exposes a single public endpoint:
    POST /api/contact
"""
from django.urls import path, include

urlpatterns = [
    path('api/', include('contact.urls')),  # Public contact form relay (no auth)
]
