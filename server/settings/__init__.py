"""Main settings file.

Settings are split into components and environments with
``django-split-settings``. The environment is selected with
the ``DJANGO_ENV`` variable (``development`` by default).
"""

from split_settings.tools import include, optional

from server.settings.components import config

_ENV = config('DJANGO_ENV', default='development')

_base_settings = (
    'components/common.py',
    'components/logging.py',
    'components/storages.py',
    'components/reconciliation.py',
    # Select the right env:
    f'environments/{_ENV}.py',
    # Optionally override some settings:
    optional('environments/local.py'),
)

include(*_base_settings)
