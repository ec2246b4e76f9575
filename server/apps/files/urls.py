"""URL configuration for files app."""

from django.urls import path

from server.apps.files import views

app_name = 'files'

urlpatterns = [
    path('files/', views.upload_files, name='upload'),
    path('files/<str:public_id>', views.file_detail, name='detail'),
    path('users/<str:username>/files', views.user_files, name='user_files'),
]
