"""
Pytest configuration for the entire test suite.

This file configures test database to use SQLite for faster tests.
"""
from django.conf import settings


def pytest_configure():
    """Configure Django settings for tests."""
    # Force SQLite for tests (faster, no Docker dependency)
    settings.DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': ':memory:',  # In-memory database for speed
        }
    }
    # django.setup() already ran (pytest-django), so the connection handler
    # and its default connection were built from the original DATABASES;
    # drop them so the override applies.
    from django.db import connections
    for alias in connections:
        try:
            del connections[alias]
        except AttributeError:
            pass
    connections._settings = None
    connections.__dict__.pop('settings', None)

    settings.PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.CRON_SECRET = 'test-cron-secret'
    settings.ORDER_EMAILS_ENABLED = True
    settings.READYZ_CHECK_STORAGE = False
    settings.MINIO_ENDPOINT = 'minio.test:9000'
    settings.MINIO_PUBLIC_URL = 'http://minio.test:9000'
