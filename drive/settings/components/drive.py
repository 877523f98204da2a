"""Settings for storage bookkeeping: quotas, uploads and listings."""

from drive.settings.components import config

# Storage limit given to a user when their quota row is first created
DRIVE_DEFAULT_QUOTA_BYTES = config(
    'DRIVE_DEFAULT_QUOTA_BYTES',
    cast=int,
    default=1024 * 1024 * 1024,
)

# Maximum number of files accepted in a single upload batch
DRIVE_MAX_UPLOAD_FILES = config('DRIVE_MAX_UPLOAD_FILES', cast=int, default=10)

DRIVE_DEFAULT_PAGE_SIZE = config('DRIVE_DEFAULT_PAGE_SIZE', cast=int, default=20)

# Trailing window for activity analytics, in days
DRIVE_ANALYTICS_PERIOD_DAYS = config(
    'DRIVE_ANALYTICS_PERIOD_DAYS',
    cast=int,
    default=30,
)
