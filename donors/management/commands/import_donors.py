# donors/management/commands/import_donors.py
"""
Django management command to import donors into the local directory
Usage: python manage.py import_donors path/to/backup.json [--mode append]
       python manage.py import_donors path/to/donors.xlsx
"""
import json

from django.core.management.base import BaseCommand, CommandError
from rest_framework.exceptions import ValidationError

from donors.storage import LocalStore
from donors.transfer import IMPORT_MODES, MODE_APPEND, import_document, read_spreadsheet, split_valid_rows


class Command(BaseCommand):
    help = 'Import donors from a JSON backup, Excel or CSV file into local storage'

    def add_arguments(self, parser):
        parser.add_argument('source_file', type=str, help='Path to a .json, .xlsx or .csv file')
        parser.add_argument(
            '--mode',
            choices=IMPORT_MODES,
            default=None,
            help='overwrite replaces the stored collections, append upserts by id '
                 '(default: overwrite for JSON, append for spreadsheets)',
        )

    def handle(self, *args, **options):
        source_file = options['source_file']
        is_json = source_file.lower().endswith('.json')
        mode = options['mode'] or ('overwrite' if is_json else MODE_APPEND)

        self.stdout.write(self.style.WARNING(f'Starting import from {source_file} ({mode})...'))

        try:
            if is_json:
                with open(source_file, encoding='utf-8') as fh:
                    payload = json.load(fh)
            else:
                rows = read_spreadsheet(source_file)
                self.stdout.write(f'Found {len(rows)} rows in spreadsheet')
                valid, rejected = split_valid_rows(rows)
                for row_number, errors in rejected:
                    self.stdout.write(self.style.WARNING(f'Skipping row {row_number}: {errors}'))
                payload = {'people': valid}
        except FileNotFoundError:
            raise CommandError(f'File not found: {source_file}')
        except ValueError as e:
            raise CommandError(f'Could not read {source_file}: {e}')

        try:
            result = import_document(LocalStore(), payload, mode=mode)
        except ValidationError as e:
            raise CommandError(f'Import failed, nothing was written: {e.detail}')

        self.stdout.write(
            self.style.SUCCESS(
                f'\n✅ Import complete!\n'
                f'Donors imported: {result["imported_donors"]}\n'
                f'Groups imported: {result["imported_groups"]}\n'
                f'Total donors: {result["total_donors"]}\n'
                f'Total groups: {result["total_groups"]}'
            )
        )
