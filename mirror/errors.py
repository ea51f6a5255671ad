"""Errors raised by the transform, store and orchestration layers."""

from typing import Any, Optional


class MirrorError(Exception):
    """Base exception for the mirror pipeline."""
    pass


class TransformValidationError(MirrorError):
    """A structurally required key field was absent from a raw record."""
    def __init__(self, entity: str, field: str, record_id: Optional[str] = None):
        message = f"{entity}: required field '{field}' is missing"
        if record_id:
            message += f" (record {record_id})"
        super().__init__(message)
        self.entity = entity
        self.field = field
        self.record_id = record_id


class PersistenceError(MirrorError):
    """An upsert or checkpoint write to the store failed."""
    def __init__(self, entity: str, key: Any, cause: Exception):
        super().__init__(f"Failed to persist {entity} {key}: {cause}")
        self.entity = entity
        self.key = key
        self.cause = cause


class StageFailedError(MirrorError):
    """A sync stage failed; carries the stage context and the underlying cause."""
    def __init__(self, entity: str, source: Optional[str], cause: Exception):
        where = f"{entity} ({source})" if source else entity
        super().__init__(f"Stage {where} failed: {cause}")
        self.entity = entity
        self.source = source
        self.cause = cause


class SyncAlreadyRunningError(MirrorError):
    """Another sync run holds the run lock."""
    def __init__(self, running_id: Optional[int] = None, started_at: Optional[str] = None):
        message = "A synchronization run is already in progress"
        if running_id is not None:
            message += f" (run {running_id}, started {started_at})"
        super().__init__(message)
        self.running_id = running_id
        self.started_at = started_at
