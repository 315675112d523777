"""
Celery application for LabWise background jobs (thumbnails, order emails).

Worker: celery -A config worker -l info
"""
import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('labwise')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
