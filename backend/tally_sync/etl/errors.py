"""Exception types raised by the sync pipeline, grouped by the level they abort."""


class SyncError(Exception):
    """Base class for all sync pipeline errors."""


class SyncRequestError(SyncError):
    """Malformed invocation. Aborts the whole run (HTTP 500)."""


class DependencyOrderError(SyncError):
    """Table order violates a declared parent dependency, or the graph has a cycle."""


class SourceReadError(SyncError):
    """A source table could not be read. Fails that table only."""

    def __init__(self, table: str, reason: str):
        self.table = table
        super().__init__(f"Could not read source table {table}: {reason}")


class SyncTimeoutError(SyncError):
    """The run deadline elapsed. Fails the table being processed."""


class RecordError(SyncError):
    """A single source row could not be synced. Fails that row only."""
