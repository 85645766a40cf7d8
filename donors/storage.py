# donors/storage.py
"""
Persistence gateway for donors and groups.

Two interchangeable stores implement the same contract:

- LocalStore keeps each collection as one JSON blob in the LocalBlob table.
  Every operation is a full read-modify-write of the collection.
- RemoteStore talks to a hosted Supabase (PostgREST) database with a
  `people` and a `groups` table, translating column names both ways.

Which one is used is decided once, by build_store(config). There is no
lock around read-modify-write: two overlapping writers race and the last
one wins.
"""
import json
import logging
from abc import ABC, abstractmethod

import requests
from django.conf import settings
from django.db import transaction
from rest_framework.exceptions import ValidationError

from .exceptions import RemoteStoreError
from .models import LocalBlob
from .records import CloudConfig
from .serializers import (
    cloud_config_from_data,
    cloud_config_to_data,
    donor_from_row,
    donor_from_stored,
    donor_to_data,
    donor_to_row,
    group_from_data,
    group_to_data,
    parse_entries,
)

LOCAL_DONORS_KEY = 'bloodline_donors_v2'
LOCAL_GROUPS_KEY = 'bloodline_groups_v1'
CLOUD_CONFIG_KEY = 'bloodline_cloud_config'

PEOPLE_TABLE = 'people'
GROUPS_TABLE = 'groups'

logger = logging.getLogger(__name__)


# ---------------------------
# Blob helpers
# ---------------------------
def read_blob(key):
    """
    Parsed JSON stored under key, or None when missing or corrupt.
    """
    blob = LocalBlob.objects.filter(key=key).first()
    if blob is None or not blob.value:
        return None
    try:
        return json.loads(blob.value)
    except ValueError as e:
        logger.warning(f"Local blob {key!r} is not valid JSON, treating as empty: {e}")
        return None


def write_blob(key, payload):
    LocalBlob.objects.update_or_create(key=key, defaults={'value': json.dumps(payload)})


def _read_list(key):
    data = read_blob(key)
    if data is None:
        return []
    if not isinstance(data, list):
        logger.warning(f"Local blob {key!r} does not hold a list, treating as empty")
        return []
    return data


def _stored(build):
    def wrapper(entry):
        if not isinstance(entry, dict) or entry.get('id') in (None, ''):
            raise ValidationError("stored entry has no id")
        return build(entry)
    return wrapper


def _upsert(records, record):
    """Replace the record with the same id in place, or append it."""
    for index, existing in enumerate(records):
        if existing.id == record.id:
            records[index] = record
            return False
    records.append(record)
    return True


def _prune_group_ids(donor, known_group_ids):
    kept = [gid for gid in donor.group_ids if gid in known_group_ids]
    if len(kept) != len(donor.group_ids):
        logger.info(f"Dropping unknown group references from donor {donor.id}")
        donor = donor.copy(group_ids=kept)
    return donor


# ---------------------------
# Cloud configuration
# ---------------------------
def load_cloud_config():
    data = read_blob(CLOUD_CONFIG_KEY)
    if not data:
        return CloudConfig()
    try:
        return cloud_config_from_data(data)
    except ValidationError as e:
        logger.warning(f"Stored cloud configuration is invalid, falling back to local storage: {e}")
        return CloudConfig()


def save_cloud_config(config):
    """
    Persist the cloud settings. Switching backends does not move any data.
    """
    write_blob(CLOUD_CONFIG_KEY, cloud_config_to_data(config))
    logger.info(f"Cloud configuration saved (active={config.active})")


# ---------------------------
# Store contract
# ---------------------------
class DirectoryStore(ABC):
    is_remote = False

    @abstractmethod
    def fetch_donors(self):
        """All donors as Donor records."""

    @abstractmethod
    def fetch_groups(self):
        """All groups as Group records."""

    @abstractmethod
    def save_donor(self, donor):
        """Insert or update by id."""

    @abstractmethod
    def delete_donor(self, donor_id):
        """Remove a donor; unknown ids are a no-op."""

    @abstractmethod
    def save_group(self, group):
        """Insert or update by id."""

    @abstractmethod
    def delete_group(self, group_id):
        """Remove a group and its id from every donor's group_ids."""


class LocalStore(DirectoryStore):
    """
    Blob-backed store. Corrupt data reads as an empty collection and
    writes never fail for data reasons.
    """

    def fetch_donors(self):
        return parse_entries(_read_list(LOCAL_DONORS_KEY), _stored(donor_from_stored), 'donor')

    def fetch_groups(self):
        return parse_entries(_read_list(LOCAL_GROUPS_KEY), _stored(group_from_data), 'group')

    def replace_donors(self, donors):
        write_blob(LOCAL_DONORS_KEY, [donor_to_data(d) for d in donors])

    def replace_groups(self, groups):
        write_blob(LOCAL_GROUPS_KEY, [group_to_data(g) for g in groups])

    def save_donor(self, donor):
        known = {g.id for g in self.fetch_groups()}
        donor = _prune_group_ids(donor, known)
        donors = self.fetch_donors()
        _upsert(donors, donor)
        self.replace_donors(donors)

    def delete_donor(self, donor_id):
        donor_id = str(donor_id)
        donors = self.fetch_donors()
        self.replace_donors([d for d in donors if d.id != donor_id])

    def save_group(self, group):
        groups = self.fetch_groups()
        _upsert(groups, group)
        self.replace_groups(groups)

    def delete_group(self, group_id):
        group_id = str(group_id)
        with transaction.atomic():
            donors = [
                d.copy(group_ids=[gid for gid in d.group_ids if gid != group_id])
                for d in self.fetch_donors()
            ]
            self.replace_donors(donors)
            self.replace_groups([g for g in self.fetch_groups() if g.id != group_id])


class RemoteStore(DirectoryStore):
    """
    Supabase REST (PostgREST) backed store. Every failure raises
    RemoteStoreError, including rows that do not validate; nothing is
    turned into an empty or shortened result.
    """
    is_remote = True

    def __init__(self, config, session=None, timeout=None):
        if not config.is_usable:
            raise ValueError("RemoteStore needs an active cloud configuration with URL and key")
        self.base_url = config.supabase_url.rstrip('/') + '/rest/v1'
        self.timeout = timeout or settings.BLOODLINE_REMOTE_TIMEOUT
        self.session = session or requests.Session()
        self.session.headers.update({
            'apikey': config.supabase_key,
            'Authorization': f'Bearer {config.supabase_key}',
            'Content-Type': 'application/json',
        })

    def _request(self, operation, method, table, params=None, payload=None, prefer=None):
        headers = {'Prefer': prefer} if prefer else None
        try:
            response = self.session.request(
                method,
                f'{self.base_url}/{table}',
                params=params,
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Remote {operation} on {table!r} failed: {e}")
            raise RemoteStoreError(operation, str(e)) from e

        if not response.ok:
            detail = (response.text or '')[:300]
            logger.error(f"Remote {operation} on {table!r} returned HTTP {response.status_code}: {detail}")
            raise RemoteStoreError(operation, detail, response.status_code)
        return response

    def _select(self, operation, table, params):
        response = self._request(operation, 'GET', table, params=params)
        try:
            rows = response.json()
        except ValueError as e:
            raise RemoteStoreError(operation, 'response body is not JSON', response.status_code) from e
        if not isinstance(rows, list):
            raise RemoteStoreError(operation, 'expected a list of rows', response.status_code)
        return rows

    def _upsert_rows(self, operation, table, rows):
        self._request(
            operation, 'POST', table,
            params={'on_conflict': 'id'},
            payload=rows,
            prefer='resolution=merge-duplicates,return=minimal',
        )

    def _parse_rows(self, operation, table, rows, build):
        """
        Build records from table rows. A row that does not validate fails
        the whole read; it is never dropped.
        """
        records = []
        for index, row in enumerate(rows):
            try:
                records.append(build(row))
            except (ValidationError, TypeError) as e:
                row_id = row.get('id') if isinstance(row, dict) else None
                detail = f"{table} row #{index} (id={row_id!r}) is invalid: {getattr(e, 'detail', e)}"
                logger.error(f"Remote {operation} failed: {detail}")
                raise RemoteStoreError(operation, detail) from e
        return records

    def fetch_donors(self):
        rows = self._select('fetch_donors', PEOPLE_TABLE, {'select': '*'})
        return self._parse_rows('fetch_donors', PEOPLE_TABLE, rows, donor_from_row)

    def fetch_groups(self):
        rows = self._select('fetch_groups', GROUPS_TABLE, {'select': '*'})
        return self._parse_rows('fetch_groups', GROUPS_TABLE, rows, group_from_data)

    def save_donor(self, donor):
        known = {g.id for g in self.fetch_groups()}
        donor = _prune_group_ids(donor, known)
        self._upsert_rows('save_donor', PEOPLE_TABLE, [donor_to_row(donor)])

    def delete_donor(self, donor_id):
        self._request('delete_donor', 'DELETE', PEOPLE_TABLE, params={'id': f'eq.{donor_id}'})

    def save_group(self, group):
        self._upsert_rows('save_group', GROUPS_TABLE, [group_to_data(group)])

    def delete_group(self, group_id):
        group_id = str(group_id)
        # Strip references first so a failure never leaves dangling ids
        rows = self._select('delete_group', PEOPLE_TABLE, {
            'select': 'id,group_ids',
            'group_ids': f'cs.{{"{group_id}"}}',
        })
        # Patch group_ids only; the rest of each row is left as stored
        for row in rows:
            if not isinstance(row, dict) or row.get('id') in (None, ''):
                raise RemoteStoreError('delete_group', f"people row without id references group {group_id}")
            kept = [gid for gid in (row.get('group_ids') or []) if str(gid) != group_id]
            self._request(
                'delete_group', 'PATCH', PEOPLE_TABLE,
                params={'id': f"eq.{row['id']}"},
                payload={'group_ids': kept},
                prefer='return=minimal',
            )
        self._request('delete_group', 'DELETE', GROUPS_TABLE, params={'id': f'eq.{group_id}'})


def build_store(config, session=None):
    """
    Pick the backing store for a cloud configuration.

    Args:
        config (CloudConfig): Usually load_cloud_config()
        session: Optional requests.Session for the remote store

    Returns:
        RemoteStore when the configuration is active and complete, else LocalStore
    """
    if config is not None and config.is_usable:
        return RemoteStore(config, session=session)
    return LocalStore()
