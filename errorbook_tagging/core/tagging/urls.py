"""
Knowledge tagging API URLs.
"""

from django.urls import include, path

from .rest_api import urls

app_name = "eb_tagging"
urlpatterns = [path("", include(urls))]
