"""Activity definitions module."""

from activities.sync import run_mirror_sync, SyncRunInput

__all__ = ["run_mirror_sync", "SyncRunInput"]
