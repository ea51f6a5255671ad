"""Worker for the mirror sync pipeline.

Polls the sync task queue and executes MirrorSyncWorkflow and its activity.
Run with --ensure-schedule to (re)register the daily schedule on startup.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from temporalio.worker import Worker

# Add repo root to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from core.config import load_settings
from core.observability import configure_logging, get_logger
from temporal_client import get_temporal_client
from workflows.mirror_sync_workflow import MirrorSyncWorkflow
from workflows.schedules import ensure_sync_schedule
from activities.sync import run_mirror_sync

logger = get_logger(__name__)


async def run_worker(task_queue: str = None, ensure_schedule: bool = False):
    """Start a worker on the sync task queue.

    Raises:
        Exception: If connection to Temporal fails
    """
    settings = load_settings()
    task_queue = task_queue or settings.sync.task_queue

    client = await get_temporal_client(settings.temporal)
    logger.info(f"Connected to Temporal: {client.namespace}")

    if ensure_schedule:
        outcome = await ensure_sync_schedule(client, settings)
        logger.info(f"Schedule {outcome['schedule_id']}: {outcome['status']}")

    worker = Worker(
        client,
        task_queue=task_queue,
        workflows=[MirrorSyncWorkflow],
        activities=[run_mirror_sync],
        # One sync at a time per worker; the run lock rejects extras anyway
        max_concurrent_activities=1,
    )
    logger.info(f"Worker running on queue '{task_queue}'... (Ctrl+C to stop)")
    try:
        await worker.run()
    except Exception as e:
        logger.error(f"Worker error: {e}", exc_info=True)
        raise


def main():
    """Entry point for worker with CLI args."""
    parser = argparse.ArgumentParser(description="Mirror Sync Temporal Worker")
    parser.add_argument(
        "--queue", "-q",
        default=None,
        help="Task queue to poll (default: SYNC_TASK_QUEUE or erp-sync)"
    )
    parser.add_argument(
        "--ensure-schedule",
        action="store_true",
        help="Create or update the daily sync schedule before polling"
    )

    args = parser.parse_args()
    settings = load_settings()
    configure_logging(level=settings.sync.log_level, json_format=settings.sync.log_json)
    try:
        asyncio.run(run_worker(task_queue=args.queue, ensure_schedule=args.ensure_schedule))
    except KeyboardInterrupt:
        logger.info("Worker interrupted by user")


if __name__ == "__main__":
    main()
