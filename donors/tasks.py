# donors/tasks.py
"""
Celery tasks for pushing the local directory to the cloud
"""
import logging

from celery import shared_task

from .exceptions import BulkSyncError
from .storage import LocalStore, RemoteStore, load_cloud_config
from .sync import push_local_to_remote

logger = logging.getLogger(__name__)


def run_cloud_sync(config=None):
    """
    Push local groups then donors to the configured remote store.

    Raises:
        ValueError: no active cloud configuration
        BulkSyncError: the push stopped part-way
    """
    config = config or load_cloud_config()
    if not config.is_usable:
        raise ValueError("Cloud sync needs an active cloud configuration with URL and key")
    report = push_local_to_remote(LocalStore(), RemoteStore(config))
    return {'groups_pushed': report.groups_pushed, 'donors_pushed': report.donors_pushed}


@shared_task
def push_local_to_remote_task():
    """
    Background bulk sync. Failures are reported in the task result.
    """
    try:
        result = run_cloud_sync()
    except ValueError as e:
        return {'status': 'skipped', 'error': str(e)}
    except BulkSyncError as e:
        logger.error(f"Background cloud sync failed: {e}")
        return {
            'status': 'failed',
            'error': str(e),
            'groups_pushed': e.groups_pushed,
            'donors_pushed': e.donors_pushed,
        }
    return {'status': 'ok', **result}
