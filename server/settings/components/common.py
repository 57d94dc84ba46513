"""Django settings shared by every environment.

For the full list of settings and their values, see
https://docs.djangoproject.com/en/5.1/ref/settings/
"""

from typing import Final

from server.settings.components import BASE_DIR, config

SECRET_KEY = config(
    'DJANGO_SECRET_KEY',
    default='django-insecure-development-only',
)

INSTALLED_APPS: tuple[str, ...] = (
    # Default django apps:
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'django.contrib.admin',

    # Storage backends:
    'storages',

    # Project apps:
    'server.apps.drive',
    'server.apps.sharing',
)

MIDDLEWARE: tuple[str, ...] = (
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
)

ROOT_URLCONF = 'server.urls'

WSGI_APPLICATION = 'server.wsgi.application'

_SQLITE_ENGINE: Final = 'django.db.backends.sqlite3'
_DATABASE_ENGINE = config('DJANGO_DATABASE_ENGINE', default=_SQLITE_ENGINE)

if _DATABASE_ENGINE == _SQLITE_ENGINE:
    DATABASES = {
        'default': {
            'ENGINE': _SQLITE_ENGINE,
            'NAME': str(BASE_DIR.joinpath('prostor.sqlite3')),
            'OPTIONS': {
                # Write transactions take the database lock up front, which
                # serializes per-owner critical sections on sqlite
                'transaction_mode': 'IMMEDIATE',
                'timeout': config('DJANGO_DATABASE_TIMEOUT', cast=int, default=20),
            },
            'TEST': {
                # A file database lets worker threads share the test database
                'NAME': str(BASE_DIR.joinpath('test_prostor.sqlite3')),
            },
        },
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': _DATABASE_ENGINE,
            'NAME': config('POSTGRES_DB'),
            'USER': config('POSTGRES_USER'),
            'PASSWORD': config('POSTGRES_PASSWORD'),
            'HOST': config('DJANGO_DATABASE_HOST'),
            'PORT': config('DJANGO_DATABASE_PORT', cast=int),
            'CONN_MAX_AGE': config('CONN_MAX_AGE', cast=int, default=60),
        },
    }

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Internationalization
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = '/static/'

TEMPLATES = [{
    'BACKEND': 'django.template.backends.django.DjangoTemplates',
    'APP_DIRS': True,
    'OPTIONS': {
        'context_processors': [
            'django.template.context_processors.debug',
            'django.template.context_processors.request',
            'django.contrib.auth.context_processors.auth',
            'django.contrib.messages.context_processors.messages',
        ],
    },
}]
