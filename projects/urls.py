from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("tagging/rest_api/", include("errorbook_tagging.core.tagging.urls")),
]
