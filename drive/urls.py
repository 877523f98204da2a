"""Root URL configuration.

The storage domain is exposed through its logic layer; only the
admin site is routed here.
"""

from django.contrib import admin
from django.urls import path

admin.autodiscover()

urlpatterns = [
    path('admin/', admin.site.urls),
]
