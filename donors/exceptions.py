class StoreError(Exception):
    """Base class for persistence failures surfaced to callers."""


class RemoteStoreError(StoreError):
    """
    A call to the hosted database failed (network, auth, permission,
    unexpected response). Never treated as "no data".
    """

    def __init__(self, operation, detail='', status_code=None):
        self.operation = operation
        self.detail = detail
        self.status_code = status_code
        message = f"Remote {operation} failed"
        if status_code is not None:
            message += f" (HTTP {status_code})"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class SyncFailed(StoreError):
    """An optimistic mutation could not be persisted and was rolled back."""

    def __init__(self, operation, cause):
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed and was rolled back: {cause}")


class BulkSyncError(StoreError):
    """
    Push of the local collections stopped part-way. Entities saved before
    the failure stay on the remote store; nothing is undone.
    """

    def __init__(self, cause, groups_pushed=0, donors_pushed=0):
        self.cause = cause
        self.groups_pushed = groups_pushed
        self.donors_pushed = donors_pushed
        super().__init__(
            f"Cloud sync stopped after {groups_pushed} groups and "
            f"{donors_pushed} donors: {cause}"
        )


class ConnectivityError(Exception):
    """The text-completion service could not be reached or answered badly."""


class RecordNotFound(Exception):
    """No donor or group with the given id in the loaded directory."""

    def __init__(self, kind, record_id):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id} not found")
