"""Django storage configuration for user file payloads.

One backend is chosen at startup from ``STORAGE_BACKEND``:

- ``local``: files under ``DRIVE_LOCAL_STORAGE_ROOT`` on disk
- ``s3``: S3-compatible object storage (AWS S3, MinIO, Cloudflare R2)

Application code always goes through ``default_storage``.
"""

from typing import Any, Final

from server.settings.components import BASE_DIR, config

_LOCAL_BACKEND: Final = 'local'
_S3_BACKEND: Final = 's3'

_BACKENDS: Final = {
    _LOCAL_BACKEND: 'server.apps.drive.infrastructure.storage.LocalFileStorage',
    _S3_BACKEND: 'server.apps.drive.infrastructure.storage.ObjectFileStorage',
}

STORAGE_BACKEND = config('STORAGE_BACKEND', default=_LOCAL_BACKEND)

if STORAGE_BACKEND not in _BACKENDS:
    raise ValueError(
        f'Unknown STORAGE_BACKEND {STORAGE_BACKEND!r}, '
        f'expected one of: {", ".join(sorted(_BACKENDS))}',
    )

if STORAGE_BACKEND == _S3_BACKEND:
    _default_options: dict[str, Any] = {
        'bucket_name': config('AWS_STORAGE_BUCKET_NAME'),
        'access_key': config('AWS_ACCESS_KEY_ID'),
        'secret_key': config('AWS_SECRET_ACCESS_KEY'),
        'endpoint_url': config(
            'AWS_S3_ENDPOINT_URL',
            default=None,
        ),
        'region_name': config(
            'AWS_S3_REGION_NAME',
            default='auto',
        ),
        'file_overwrite': False,  # Prevent accidental overwrites
        'default_acl': None,  # Inherit bucket ACL
    }
else:
    _default_options = {
        'location': config(
            'DRIVE_LOCAL_STORAGE_ROOT',
            default=str(BASE_DIR.joinpath('uploads')),
        ),
    }

STORAGES: Final[dict[str, dict[str, Any]]] = {
    'default': {
        'BACKEND': _BACKENDS[STORAGE_BACKEND],
        'OPTIONS': _default_options,
    },
    'staticfiles': {
        # Keep static files separate from user files
        'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
    },
}
