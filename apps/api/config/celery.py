"""
Celery application for background work (analysis hand-off and polling).
"""
import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('dental_marketplace')

# All CELERY_* keys in Django settings configure the app
app.config_from_object('django.conf:settings', namespace='CELERY')

app.autodiscover_tasks()
