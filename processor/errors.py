"""Error types raised across the fetch, normalize and persist stages."""


class EventSyncError(Exception):
    """Base class for all event sync errors."""


class SourceFetchError(EventSyncError):
    """An event source failed to fetch or parse its listings."""


class RecordNormalizationError(EventSyncError):
    """A single raw record could not be normalized."""


class StoreWriteError(EventSyncError):
    """Writing a single row to the store failed."""


class StoreReadError(EventSyncError):
    """Reading rows from the store failed."""


class ConfigurationError(EventSyncError):
    """Store credentials or identifiers are missing or invalid."""
