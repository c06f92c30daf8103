"""
Test settings.

Forces SQLite in memory (faster, no Docker dependency) and fast password hashing.
"""
from .settings import *  # noqa: F401,F403

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

STORAGES = {
    'default': {
        'BACKEND': 'django.core.files.storage.FileSystemStorage',
    },
    'staticfiles': {
        'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
    },
}

CELERY_TASK_ALWAYS_EAGER = False
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

ANALYSIS_API_KEY = 'test-api-key'
ANALYSIS_API_URL = 'https://analysis.test/partner-api'
ANALYSIS_WEBHOOK_SECRET = 'test-webhook-secret'
