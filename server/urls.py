"""Root URL configuration.

The storage core exposes no HTTP endpoints of its own; only the admin
site is mounted here.
"""

from django.contrib import admin
from django.urls import path

urlpatterns = [
    path('admin/', admin.site.urls),
]
