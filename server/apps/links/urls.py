"""URL configuration for links app."""

from django.urls import path

from server.apps.links import views

app_name = 'links'

urlpatterns = [
    path('url/', views.create_link, name='create'),
    path('url/<str:tag>', views.link_detail, name='detail'),
]
