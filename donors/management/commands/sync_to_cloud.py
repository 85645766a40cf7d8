"""
Push every local group and donor to the configured cloud database
Usage: python manage.py sync_to_cloud
"""
from django.core.management.base import BaseCommand, CommandError

from donors.exceptions import BulkSyncError
from donors.tasks import run_cloud_sync


class Command(BaseCommand):
    help = 'Copy the local directory to the cloud store (groups first, then donors)'

    def handle(self, *args, **options):
        try:
            result = run_cloud_sync()
        except ValueError as e:
            raise CommandError(str(e))
        except BulkSyncError as e:
            raise CommandError(f'Sync is not atomic; the cloud store may now be partially updated. {e}')

        self.stdout.write(self.style.SUCCESS(
            f'Pushed {result["groups_pushed"]} groups and {result["donors_pushed"]} donors'
        ))
