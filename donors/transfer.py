# donors/transfer.py
"""
Backup export and import of the local directory
"""
import logging
import numbers
from datetime import date, datetime, timezone

import pandas as pd
from django.db import transaction

from .serializers import (
    DonorInputSerializer,
    ImportDocumentSerializer,
    donor_from_validated,
    donor_to_data,
    group_from_data,
    group_to_data,
)

MODE_OVERWRITE = 'overwrite'
MODE_APPEND = 'append'
IMPORT_MODES = (MODE_OVERWRITE, MODE_APPEND)

# Spreadsheet column -> application field
SPREADSHEET_COLUMNS = {
    'id': 'id',
    'name': 'name',
    'full_name': 'name',
    'phone': 'phoneNumber',
    'phone_number': 'phoneNumber',
    'blood_group': 'bloodGroup',
    'blood_type': 'bloodGroup',
    'notes': 'notes',
    'location': 'location',
    'address': 'location',
    'last_donation_date': 'lastDonationDate',
}

logger = logging.getLogger(__name__)


def build_export_document(donors, groups, exported_at=None):
    if exported_at is None:
        exported_at = datetime.now(timezone.utc)
    return {
        'people': [donor_to_data(d) for d in donors],
        'groups': [group_to_data(g) for g in groups],
        'exportedAt': exported_at.isoformat(),
    }


def export_filename(today=None):
    today = today or date.today()
    return f"bloodline-backup-{today.isoformat()}.json"


def _merge(existing, incoming, mode):
    if mode == MODE_OVERWRITE:
        return list(incoming)
    merged = list(existing)
    positions = {record.id: index for index, record in enumerate(merged)}
    for record in incoming:
        if record.id in positions:
            merged[positions[record.id]] = record
        else:
            positions[record.id] = len(merged)
            merged.append(record)
    return merged


def import_document(local_store, payload, mode=MODE_OVERWRITE):
    """
    Load a backup document into the local blobs.

    Only the collections present in the payload are touched. Donor
    references to groups that do not exist afterwards are dropped.

    Args:
        local_store (LocalStore): Target store
        payload (dict): Document with optional `people` / `groups` arrays
        mode (str): 'overwrite' replaces a collection, 'append' upserts by id

    Returns:
        Dict with imported counts and the resulting totals

    Raises:
        ValidationError: the document is malformed; nothing is written
        ValueError: unknown mode
    """
    if mode not in IMPORT_MODES:
        raise ValueError(f"Unknown import mode: {mode!r}")

    serializer = ImportDocumentSerializer(data=payload)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    with transaction.atomic():
        groups = local_store.fetch_groups()
        donors = local_store.fetch_donors()

        incoming_groups = [group_from_data(dict(g)) for g in data.get('groups', [])]
        incoming_donors = [donor_from_validated(d) for d in data.get('people', [])]

        if 'groups' in data:
            groups = _merge(groups, incoming_groups, mode)
        if 'people' in data:
            donors = _merge(donors, incoming_donors, mode)

        known = {g.id for g in groups}
        donors = [d.copy(group_ids=[gid for gid in d.group_ids if gid in known]) for d in donors]

        local_store.replace_groups(groups)
        local_store.replace_donors(donors)

    logger.info(
        f"Imported {len(incoming_donors)} donors and {len(incoming_groups)} groups ({mode})"
    )
    return {
        'imported_donors': len(incoming_donors),
        'imported_groups': len(incoming_groups),
        'total_donors': len(donors),
        'total_groups': len(groups),
    }


# ---------------------------
# Spreadsheet import
# ---------------------------
def _to_epoch_ms(value):
    if value is None or pd.isna(value):
        return None
    if isinstance(value, numbers.Number):
        return int(value)
    return int(pd.Timestamp(value).timestamp() * 1000)


def read_spreadsheet(path):
    """
    Read donor rows from an .xlsx/.xls or .csv file into application-shaped dicts
    """
    if str(path).lower().endswith('.csv'):
        df = pd.read_csv(path, dtype={'phone': str, 'phone_number': str})
    else:
        df = pd.read_excel(path, dtype={'phone': str, 'phone_number': str})

    df.columns = [str(c).strip().lower() for c in df.columns]
    rows = []
    for _, row in df.iterrows():
        entry = {}
        for column, target in SPREADSHEET_COLUMNS.items():
            if column not in df.columns or target in entry:
                continue
            value = row[column]
            if target == 'lastDonationDate':
                entry[target] = _to_epoch_ms(value)
            elif pd.notna(value):
                entry[target] = str(value).strip()
        rows.append(entry)
    return rows


def split_valid_rows(rows):
    """
    Separate rows that validate as donors from the ones that do not.

    Returns:
        (valid_rows, [(row_number, errors), ...]) with spreadsheet row numbers
    """
    valid, rejected = [], []
    for index, row in enumerate(rows):
        serializer = DonorInputSerializer(data=row)
        if serializer.is_valid():
            valid.append(row)
        else:
            rejected.append((index + 2, serializer.errors))
    return valid, rejected
