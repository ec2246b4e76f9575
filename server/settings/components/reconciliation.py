"""Settings for the background reconciliation of storage and database."""

from typing import Final

from server.settings.components import config

# Destructive cleanup only runs in production, other modes just log
FILES_IS_PRODUCTION: Final = config('ISPRODUCTION', cast=bool, default=False)

# Start the scheduler together with the web process
FILES_START_BACKGROUND_TASKS: Final = config(
    'FILES_START_BACKGROUND_TASKS',
    cast=bool,
    default=False,
)

FILES_CHECK_INTERVAL_MINUTES: Final = config(
    'FILES_CHECK_INTERVAL_MINUTES',
    cast=int,
    default=30,
)
FILES_TOKEN_CHECK_INTERVAL_MINUTES: Final = config(
    'FILES_TOKEN_CHECK_INTERVAL_MINUTES',
    cast=int,
    default=10,
)
FILES_EXPIRY_CHECK_INTERVAL_MINUTES: Final = config(
    'FILES_EXPIRY_CHECK_INTERVAL_MINUTES',
    cast=int,
    default=10,
)
