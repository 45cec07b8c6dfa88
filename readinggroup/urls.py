from django.conf import settings
from django.contrib import admin
from django.urls import path

from readinggroup.api import api as readinggroup_api

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", readinggroup_api.urls),
]

if settings.DEBUG:
    from django.conf.urls.static import static

    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
