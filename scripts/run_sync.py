"""Run a mirror sync from the command line.

By default the sync runs in-process (manual policy: incremental, stop on
first failure). --scheduled applies the scheduled policy (full resync,
continue past failed stages). --temporal starts MirrorSyncWorkflow on
Temporal instead and waits for its result.

Exits non-zero when a manual run fails.
"""

import argparse
import asyncio
import json
import sys
import uuid
from pathlib import Path

# Add repo root to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from core.config import load_settings
from core.observability import configure_logging, get_logger
from mirror.orchestrator import TRIGGER_MANUAL, TRIGGER_SCHEDULED, build_orchestrator


logger = get_logger(__name__)


async def run_in_process(trigger: str, full_resync: bool) -> bool:
    """Run the sync directly against BC and the local store."""
    orchestrator = build_orchestrator(load_settings())
    try:
        if trigger == TRIGGER_SCHEDULED:
            await orchestrator.run_scheduled_sync()
            return True

        response = await orchestrator.run_manual_sync(full_resync=full_resync)
        print(json.dumps(response.model_dump(), indent=2, default=str))
        return response.success
    finally:
        await orchestrator.aclose()


async def run_on_temporal(trigger: str, full_resync: bool) -> bool:
    """Start MirrorSyncWorkflow and wait for its summary."""
    from temporal_client import get_temporal_client
    from workflows.mirror_sync_workflow import MirrorSyncWorkflow
    from activities.sync import SyncRunInput

    settings = load_settings()
    client = await get_temporal_client(settings.temporal)
    logger.info(f"Connected to Temporal: {client.namespace}")

    workflow_id = f"erp-mirror-{trigger}-{uuid.uuid4().hex[:8]}"
    logger.info(f"Starting MirrorSyncWorkflow {workflow_id} on task queue '{settings.sync.task_queue}'...")
    result = await client.execute_workflow(
        MirrorSyncWorkflow.run,
        SyncRunInput(trigger=trigger, full_resync=full_resync),
        id=workflow_id,
        task_queue=settings.sync.task_queue,
    )
    print(json.dumps(result, indent=2, default=str))
    return result.get("status") != "failed"


def main():
    parser = argparse.ArgumentParser(description="Run the Business Central mirror sync")
    parser.add_argument("--full", action="store_true", help="Ignore checkpoints and resync everything")
    parser.add_argument(
        "--scheduled",
        action="store_true",
        help="Use the scheduled policy (full resync, continue past failed stages)",
    )
    parser.add_argument("--temporal", action="store_true", help="Run through Temporal instead of in-process")
    args = parser.parse_args()

    settings = load_settings()
    configure_logging(level=settings.sync.log_level, json_format=settings.sync.log_json)

    trigger = TRIGGER_SCHEDULED if args.scheduled else TRIGGER_MANUAL
    full_resync = args.full or args.scheduled
    runner = run_on_temporal if args.temporal else run_in_process

    ok = asyncio.run(runner(trigger, full_resync))
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
