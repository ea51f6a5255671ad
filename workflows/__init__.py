"""Workflow definitions module."""

from workflows.mirror_sync_workflow import MirrorSyncWorkflow

__all__ = ["MirrorSyncWorkflow"]
