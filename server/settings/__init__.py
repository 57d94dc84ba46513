"""Main settings file for the project.

Settings are split into components and environments with
``django-split-settings``. The environment is chosen with ``DJANGO_ENV``.
"""

from os import environ

import django_stubs_ext
from split_settings.tools import include, optional

# Allows generic subscripting such as ``admin.ModelAdmin[File]`` at runtime
django_stubs_ext.monkeypatch()

environ.setdefault('DJANGO_ENV', 'development')
_ENV = environ['DJANGO_ENV']

_base_settings = (
    'components/common.py',
    'components/logging.py',
    'components/storages.py',
    'components/drive.py',
    # Select the right env:
    f'environments/{_ENV}.py',
    # Optionally override some settings:
    optional('environments/local.py'),
)

include(*_base_settings)
