"""Settings for the drive and sharing apps."""

from server.settings.components import config

# Per-owner storage budget, the same for every account
DRIVE_QUOTA_BYTES = config(
    'DRIVE_QUOTA_BYTES',
    cast=int,
    default=10 * 1024 * 1024 * 1024,
)

# Largest payload accepted by upload and returned by object storage reads
DRIVE_MAX_UPLOAD_BYTES = config(
    'DRIVE_MAX_UPLOAD_BYTES',
    cast=int,
    default=100 * 1024 * 1024,
)

# Dotted path to the SearchIndexer notified about namespace changes
DRIVE_SEARCH_INDEXER = config(
    'DRIVE_SEARCH_INDEXER',
    default='server.apps.drive.infrastructure.search.NullSearchIndexer',
)

# Ids bound per query when cascading deletes, below every backend's
# bound-parameter limit
DRIVE_DELETE_BATCH_SIZE = config(
    'DRIVE_DELETE_BATCH_SIZE',
    cast=int,
    default=500,
)
