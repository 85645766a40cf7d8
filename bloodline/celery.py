# bloodline/celery.py
"""
Celery app for pushing the local directory to the cloud in the background
"""
import os
from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'bloodline.settings')

app = Celery('bloodline')

# CELERY_* values in bloodline/settings.py
app.config_from_object('django.conf:settings', namespace='CELERY')

# Cloud pushes are slow HTTP work; keep them off the default queue
app.conf.task_routes = {
    'donors.tasks.push_local_to_remote_task': {'queue': 'cloud-sync'},
}

app.autodiscover_tasks()
