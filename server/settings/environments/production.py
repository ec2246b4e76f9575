"""Settings for production deployments."""

from typing import Final

from server.settings.components import config

DEBUG: Final = False

ALLOWED_HOSTS: Final = [
    host.strip()
    for host in config('DJANGO_ALLOWED_HOSTS', default='').split(',')
    if host.strip()
]
