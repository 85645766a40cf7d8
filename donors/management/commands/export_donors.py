"""
Write the directory held by the active store to a dated JSON backup
Usage: python manage.py export_donors [--output path]
"""
import json

from django.core.management.base import BaseCommand, CommandError

from donors.exceptions import StoreError
from donors.storage import build_store, load_cloud_config
from donors.transfer import build_export_document, export_filename


class Command(BaseCommand):
    help = 'Export donors and groups from the active store (local or cloud) to a JSON backup file'

    def add_arguments(self, parser):
        parser.add_argument('--output', type=str, default=None, help='Target file (default: dated file name)')

    def handle(self, *args, **options):
        store = build_store(load_cloud_config())
        try:
            document = build_export_document(store.fetch_donors(), store.fetch_groups())
        except StoreError as e:
            raise CommandError(f'Could not read the directory: {e}')
        output = options['output'] or export_filename()

        with open(output, 'w', encoding='utf-8') as fh:
            json.dump(document, fh, indent=2)

        self.stdout.write(self.style.SUCCESS(
            f'Exported {len(document["people"])} donors and {len(document["groups"])} groups to {output}'
        ))
