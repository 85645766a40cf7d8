# donors/sync.py
"""
Synchronization controller: keeps an in-memory copy of the directory
responsive while writes go to the persistence gateway.

Mutations are optimistic. The in-memory state changes first, then the
store is called; on failure the state is rolled back (or re-fetched) and
the error is raised to the caller as SyncFailed.

Mutations are not serialized. Two overlapping edits against the
full-collection local store can lose one of them (last writer wins).
"""
import copy
import logging
from dataclasses import dataclass

from rest_framework.exceptions import ValidationError

from algorithms.directory import query_donors
from algorithms.eligibility import now_ms
from .exceptions import BulkSyncError, RecordNotFound, StoreError, SyncFailed
from .records import pick_group_color
from .serializers import donor_from_data, group_from_data

ROLLBACK_RESTORE = 'restore'
ROLLBACK_REFETCH = 'refetch'

logger = logging.getLogger(__name__)


class OptimisticMutation:
    """
    Two-phase update: snapshot -> apply -> commit or rollback.

    Usage:
        with OptimisticMutation(controller, 'delete_donor') as mutation:
            mutation.apply(lambda: ...)      # change in-memory state
            store.delete_donor(donor_id)      # persist

    Leaving the block with a StoreError rolls back with the chosen policy
    and raises SyncFailed. A clean exit commits.
    """

    def __init__(self, controller, operation, rollback=ROLLBACK_RESTORE):
        if rollback not in (ROLLBACK_RESTORE, ROLLBACK_REFETCH):
            raise ValueError(f"Unknown rollback policy: {rollback!r}")
        self.controller = controller
        self.operation = operation
        self.rollback_policy = rollback
        self.snapshot = None
        self.committed = False

    def __enter__(self):
        self.snapshot = self.controller.snapshot()
        return self

    def apply(self, change):
        change()

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.committed = True
            self.controller.after_commit(self.operation)
            return False
        if not issubclass(exc_type, StoreError):
            self.controller.restore(self.snapshot)
            return False

        logger.error(f"{self.operation} failed, rolling back ({self.rollback_policy}): {exc}")
        self.rollback()
        raise SyncFailed(self.operation, exc) from exc

    def rollback(self):
        if self.rollback_policy == ROLLBACK_REFETCH:
            try:
                self.controller.refresh()
                return
            except StoreError as e:
                logger.error(f"Re-fetch after failed {self.operation} also failed: {e}")
        self.controller.restore(self.snapshot)


class DirectoryController:
    """
    In-memory donors and groups plus the operations the UI triggers.

    Args:
        store (DirectoryStore): Gateway chosen by build_store()
        clock: Callable returning epoch ms, injectable for tests
        reconcile (bool): Re-fetch after every successful mutation
    """

    def __init__(self, store, clock=now_ms, reconcile=False):
        self.store = store
        self.clock = clock
        self.reconcile = reconcile
        self.donors = []
        self.groups = []

    # ---------------------------
    # State helpers
    # ---------------------------
    def snapshot(self):
        return copy.deepcopy(self.donors), copy.deepcopy(self.groups)

    def restore(self, snapshot):
        self.donors, self.groups = snapshot

    def refresh(self):
        """Load both collections from the store. Failures propagate."""
        donors = self.store.fetch_donors()
        groups = self.store.fetch_groups()
        self.donors, self.groups = donors, groups
        return self

    def after_commit(self, operation):
        # The optimistic state is already in place; a failed reconcile keeps it
        if not self.reconcile:
            return
        try:
            self.refresh()
        except StoreError as e:
            logger.warning(f"Reconcile after {operation} failed, keeping local state: {e}")

    def get_donor(self, donor_id):
        donor_id = str(donor_id)
        for donor in self.donors:
            if donor.id == donor_id:
                return donor
        return None

    def get_group(self, group_id):
        group_id = str(group_id)
        for group in self.groups:
            if group.id == group_id:
                return group
        return None

    def query(self, directory_filter=None):
        return query_donors(self.donors, directory_filter, now=self.clock())

    # ---------------------------
    # Donors
    # ---------------------------
    def save_donor(self, data, donor_id=None):
        """
        Register a new donor (fresh id) or edit an existing one.
        Raises ValidationError before any state change or store call, and
        RecordNotFound when editing an id that is not loaded.
        """
        if donor_id is not None and self.get_donor(donor_id) is None:
            raise RecordNotFound('Donor', donor_id)
        donor = donor_from_data(data, donor_id=str(donor_id) if donor_id is not None else None)
        unknown = [gid for gid in donor.group_ids if self.get_group(gid) is None]
        if unknown:
            raise ValidationError({'groupIds': [f"Unknown group: {gid}" for gid in unknown]})

        def change():
            for index, existing in enumerate(self.donors):
                if existing.id == donor.id:
                    self.donors[index] = donor
                    return
            self.donors.append(donor)

        with OptimisticMutation(self, 'save_donor') as mutation:
            mutation.apply(change)
            self.store.save_donor(donor)
        logger.info(f"Saved donor {donor.id} ({donor.blood_group})")
        return donor

    def delete_donor(self, donor_id):
        donor_id = str(donor_id)
        if self.get_donor(donor_id) is None:
            raise RecordNotFound('Donor', donor_id)

        with OptimisticMutation(self, 'delete_donor', rollback=ROLLBACK_RESTORE) as mutation:
            mutation.apply(lambda: setattr(self, 'donors', [d for d in self.donors if d.id != donor_id]))
            self.store.delete_donor(donor_id)
        logger.info(f"Deleted donor {donor_id}")

    def mark_donated(self, donor_id):
        """
        Record a donation now. Only ever sets last_donation_date.
        """
        donor = self.get_donor(donor_id)
        if donor is None:
            raise RecordNotFound('Donor', donor_id)
        updated = donor.copy(last_donation_date=self.clock())

        def change():
            self.donors = [updated if d.id == updated.id else d for d in self.donors]

        with OptimisticMutation(self, 'mark_donated', rollback=ROLLBACK_REFETCH) as mutation:
            mutation.apply(change)
            self.store.save_donor(updated)
        logger.info(f"Donor {updated.id} marked as donated")
        return updated

    # ---------------------------
    # Groups
    # ---------------------------
    def create_group(self, name):
        group = group_from_data({'name': name}, color=pick_group_color(len(self.groups)))

        with OptimisticMutation(self, 'save_group') as mutation:
            mutation.apply(lambda: self.groups.append(group))
            self.store.save_group(group)
        logger.info(f"Created group {group.id} ({group.name})")
        return group

    def delete_group(self, group_id):
        group_id = str(group_id)
        if self.get_group(group_id) is None:
            raise RecordNotFound('Group', group_id)

        def change():
            self.groups = [g for g in self.groups if g.id != group_id]
            self.donors = [
                d.copy(group_ids=[gid for gid in d.group_ids if gid != group_id])
                for d in self.donors
            ]

        with OptimisticMutation(self, 'delete_group', rollback=ROLLBACK_RESTORE) as mutation:
            mutation.apply(change)
            self.store.delete_group(group_id)
        logger.info(f"Deleted group {group_id}")


# ---------------------------
# Bulk synchronization
# ---------------------------
@dataclass
class SyncReport:
    groups_pushed: int = 0
    donors_pushed: int = 0


def push_local_to_remote(local_store, remote_store):
    """
    Copy every local group, then every local donor, to the remote store.

    Saves run one at a time, groups first so donor group references are
    valid when donors arrive. Not transactional: a failure part-way
    leaves the remote store with whatever was pushed before it, and is
    reported once as BulkSyncError.
    """
    groups = local_store.fetch_groups()
    donors = local_store.fetch_donors()
    report = SyncReport()
    logger.info(f"Pushing {len(groups)} groups and {len(donors)} donors to the cloud")

    try:
        for group in groups:
            remote_store.save_group(group)
            report.groups_pushed += 1
        for donor in donors:
            remote_store.save_donor(donor)
            report.donors_pushed += 1
    except StoreError as e:
        logger.error(f"Cloud sync stopped: {e}")
        raise BulkSyncError(e, report.groups_pushed, report.donors_pushed) from e

    logger.info(f"Cloud sync complete: {report.groups_pushed} groups, {report.donors_pushed} donors")
    return report
