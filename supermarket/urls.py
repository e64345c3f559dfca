"""
URL configuration for the supermarket project.
"""
from django.urls import path

from shop.api.views import graphql_view

urlpatterns = [
    path('graphql/', graphql_view, name='graphql'),
]
