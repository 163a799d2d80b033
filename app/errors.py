# app/errors.py


class ConfigError(Exception):
    """Raised when a required setting is missing or malformed."""

    category = "config_error"


class SyncError(Exception):
    """Base class for failures that abandon a sync cycle."""

    category = "sync_error"


class MetadataReadFailed(SyncError):
    category = "metadata_read_failed"


class SourceUnavailable(SyncError):
    category = "source_unavailable"


class MalformedSessionRecord(SyncError):
    category = "malformed_session_record"


class AggregateFetchFailed(SyncError):
    category = "aggregate_fetch_failed"


class AggregateWriteFailed(SyncError):
    category = "aggregate_write_failed"


class SyncCommitFailed(AggregateWriteFailed):
    category = "commit_failed"


class MetadataWriteFailed(SyncError):
    category = "metadata_write_failed"
