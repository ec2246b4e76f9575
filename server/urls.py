"""Main URL mapping configuration file.

Include other URLConfs from external apps using method `include()`.
"""

from django.contrib import admin
from django.urls import include, path

from server.apps.links import views as links_views

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('server.apps.files.urls')),
    path('api/', include('server.apps.links.urls')),
    # Short links live at the root, so this must stay last
    path('<str:tag>', links_views.follow_link, name='follow_link'),
]
