"""Logging configuration.

Every module logs through ``logging.getLogger(__name__)``, so the
``server`` logger controls the whole project. Records propagate to the
root console handler.
"""

from server.settings.components import config

LOG_LEVEL = config('LOG_LEVEL', default='INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'console': {
            'format': '%(asctime)s %(levelname)s %(name)s: %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'console',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'django': {
            'level': 'INFO',
        },
        'server': {
            'level': LOG_LEVEL,
        },
        'apscheduler': {
            'level': 'WARNING',
        },
    },
}
